"""
FastAPI 应用主入口

组合根：在此创建配置、日志、指标、ServiceNow 客户端与告警服务，并注入到路由中。
启动方式：uvicorn app:create_app --factory（或 python run.py）
"""
import asyncio
import json
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST
from starlette.concurrency import run_in_threadpool

from alert2snow.adapters import parse_batch
from alert2snow.core import Metrics, RequestContext, get_logger, load_config, setup_logging
from alert2snow.core.exceptions import PayloadError
from alert2snow.core.models import Settings
from alert2snow.senders import ServiceNowClient
from alert2snow.services import AlertService, IncidentClient, IncidentTransformer

logger = get_logger()

WEBHOOK_PATH = "/alertmanager/webhook"

# 处理期间检测客户端断开的间隔（秒）
DISCONNECT_POLL_INTERVAL = 0.5


async def run_until_disconnect(
    req: Request,
    ctx: RequestContext,
    func: Callable[..., Any],
    *args: Any,
    poll_interval: float = DISCONNECT_POLL_INTERVAL,
) -> Any:
    """
    在线程池中执行 func(ctx, *args)，客户端断开或请求被取消时取消 ctx

    线程无法被强制终止，取消后仍等待 func 返回（ctx 取消后重试退避会立即结束）。
    """
    task = asyncio.ensure_future(run_in_threadpool(func, ctx, *args))
    try:
        while not task.done():
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if not done and not ctx.cancelled and await req.is_disconnected():
                logger.warning("客户端已断开连接，取消剩余告警处理")
                ctx.cancel()
        return task.result()
    except asyncio.CancelledError:
        ctx.cancel()
        raise


def create_app(
    settings: Optional[Settings] = None,
    client: Optional[IncidentClient] = None,
    metrics: Optional[Metrics] = None,
) -> FastAPI:
    """
    创建 FastAPI 应用

    Args:
        settings: 配置；为空时从 config.yaml / 环境变量加载，并在此处初始化日志（仅此一处）
        client: incident 客户端；为空时创建 ServiceNowClient
        metrics: 指标集合；为空时新建独立 registry
    """
    if settings is None:
        _, settings = load_config()
        log_cfg = settings.logging
        setup_logging(
            log_dir=log_cfg.log_dir,
            log_file=log_cfg.log_file,
            level=log_cfg.level,
            max_bytes=log_cfg.max_bytes,
            backup_count=log_cfg.backup_count,
        )

    metrics = metrics or Metrics()
    owns_client = client is None
    if client is None:
        client = ServiceNowClient(settings.servicenow, metrics=metrics)
    transformer = IncidentTransformer(settings.servicenow, settings.labels)
    service = AlertService(client, transformer, metrics=metrics)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info("=" * 60)
        logger.info("alert2snow 服务启动")
        logger.info(f"监听地址: {settings.server.host}:{settings.server.port}")
        logger.info(f"ServiceNow: {settings.servicenow.base_url}{settings.servicenow.endpoint_path}")
        logger.info(
            f"集群 label: {settings.labels.cluster_key}, 环境 label: {settings.labels.environment_key}"
        )
        logger.info("=" * 60)

        yield

        logger.info("alert2snow 服务正在关闭...")
        if owns_client:
            client.close()
        logger.info("alert2snow 服务已关闭")

    app = FastAPI(lifespan=lifespan, redirect_slashes=False)
    app.state.settings = settings
    app.state.metrics = metrics
    app.state.alert_service = service

    @app.post(WEBHOOK_PATH)
    async def webhook(req: Request):
        """接收 Alertmanager Webhook，解析成功即返回 200（单条告警失败只记日志）"""
        request_id = str(uuid.uuid4())[:8]
        try:
            payload = await req.json()
        except ValueError as e:
            logger.error(f"[{request_id}] Webhook 请求体不是合法 JSON: {e}")
            return JSONResponse({"error": "Invalid JSON payload"}, status_code=400)

        try:
            batch = parse_batch(payload)
        except PayloadError as e:
            logger.error(f"[{request_id}] Alertmanager payload 格式错误: {e}")
            return JSONResponse({"error": f"Invalid alertmanager payload: {e}"}, status_code=400)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"[{request_id}] 接收到的完整 Webhook 数据:\n{json.dumps(payload, ensure_ascii=False, indent=2)}")
        logger.info(
            f"[{request_id}] Webhook 收到 (status={batch.status}, receiver={batch.receiver}, "
            f"alerts={len(batch.alerts)})"
        )

        ctx = RequestContext(timeout=settings.server.request_timeout)
        result = await run_until_disconnect(req, ctx, service.process_batch, batch)
        logger.info(f"[{request_id}] Webhook 处理完成: 共 {result.total} 条，失败 {result.failed} 条")
        return {"status": "ok"}

    @app.get("/healthz")
    async def healthz():
        return PlainTextResponse("ok")

    @app.get("/readyz")
    async def readyz():
        return PlainTextResponse("ok")

    @app.get("/metrics")
    async def metrics_endpoint():
        return Response(content=metrics.render(), media_type=CONTENT_TYPE_LATEST)

    return app

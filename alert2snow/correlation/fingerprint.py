"""
告警指纹（correlation_id）生成

多副本无状态部署时，firing 与 resolved 可能落在不同副本上处理，
resolved 只能靠 correlation_id 找回 firing 时创建的 incident，因此生成算法必须确定：
- label 按 key 字典序排序后拼接，与 label 原始顺序无关
- 拼接方式：alertname + key1 + value1 + key2 + value2 ...（无分隔符）
- SHA-256 后取前 8 字节，输出 16 位十六进制
"""
import hashlib
from typing import Mapping

CORRELATION_ID_LENGTH = 16


def generate_correlation_id(alertname: str, labels: Mapping[str, str]) -> str:
    """
    根据告警名和完整 labels 生成 correlation_id

    Args:
        alertname: 告警名（可为空）
        labels: 告警标签（可为空）

    Returns:
        str: 16 位十六进制字符串
    """
    parts = [alertname or ""]
    for key in sorted(labels):
        parts.append(key)
        parts.append(labels[key])
    digest = hashlib.sha256("".join(parts).encode("utf-8")).hexdigest()
    return digest[:CORRELATION_ID_LENGTH]

"""URL转换为slug的工具函数"""

import re
import unicodedata

_SCHEME_PATTERN = re.compile(r'^(\w+:|)//')
_SEPARATOR_PATTERN = re.compile(r'[^a-z0-9]+')

# 按顺序拆分驼峰单词，"APIs" 这类复数缩写不拆
_DECAMELIZE_STEPS = (
    (re.compile(r'([A-Z]{2,})(\d+)'), r'\1 \2'),
    (re.compile(r'([a-z\d]+)([A-Z]{2,})'), r'\1 \2'),
    (re.compile(r'([a-z\d])([A-Z])'), r'\1 \2'),
    (re.compile(r'([A-Z]+)([A-Z][a-rt-z\d]+)'), r'\1 \2'),
)


def decamelize(text: str) -> str:
    """在驼峰单词之间插入空格，例如 healthCheck -> health Check"""
    for pattern, replacement in _DECAMELIZE_STEPS:
        text = pattern.sub(replacement, text)
    return text


def strip_scheme(url: str) -> str:
    """去掉URL开头的 scheme:// 或 //"""
    return _SCHEME_PATTERN.sub('', url, count=1)


def slugify(text: str) -> str:
    """
    将任意文本转换为只包含小写字母、数字和连字符的slug

    Args:
        text: 原始文本

    Returns:
        str: slug，例如 "www.example.com/status" -> "www-example-com-status"，
             "example.com/healthCheck" -> "example-com-health-check"
    """
    # 转写为ASCII，去掉重音符号
    normalized = unicodedata.normalize('NFKD', text)
    ascii_text = normalized.encode('ascii', 'ignore').decode('ascii')

    ascii_text = decamelize(ascii_text).replace('&', ' and ').lower()
    return _SEPARATOR_PATTERN.sub('-', ascii_text).strip('-')


def site_slug(url: str) -> str:
    """
    生成站点的slug，同时用作历史文件名和工单标签

    Args:
        url: 站点URL

    Returns:
        str: 站点slug
    """
    return slugify(strip_scheme(url.strip()))

"""
生成唯一 slug 的工具函数。

为分类、文章生成 URL 友好的标识符:
小写化 → 去掉 [a-z0-9\\s-] 以外的字符 → 空白折叠为单个连字符 → 连续连字符折叠 → 去掉首尾连字符。
中文先转为拼音，带重音的拉丁字母先折叠为 ASCII。
对同一名称重复生成得到同一结果，已生成的 slug 再次处理保持不变。
"""
import re
import time
import unicodedata
from pypinyin import lazy_pinyin

SLUG_PATTERN = re.compile(r'^[a-z0-9-]+$')


def slugify(text):
    """
    将文本转换为 URL 友好的 slug 格式

    在去掉 [a-z0-9\\s-] 以外的字符之前，中文先转为拼音，带重音的字母经 NFKD 分解后
    只保留基础字母，因此 "Café Crème" 得到 "cafe-creme" 而不是 "caf-crme"。

    参数:
        text (str): 要转换的文本

    返回:
        str: 格式化后的 slug，可能为空字符串
    """
    text = str(text or '')
    # 如果是中文，先转为拼音
    if any('\u4e00' <= char <= '\u9fff' for char in text):
        text = ' '.join(lazy_pinyin(text))

    text = unicodedata.normalize('NFKD', text).encode('ascii', 'ignore').decode('ascii')
    text = text.lower()
    text = re.sub(r'[^a-z0-9\s-]', '', text)
    text = re.sub(r'\s+', '-', text)
    text = re.sub(r'-+', '-', text)
    return text.strip('-')


def is_valid_slug(value):
    return bool(value) and SLUG_PATTERN.match(value) is not None


def slug_exists(slug, model, exclude_id=None):
    query = model.query.filter(model.slug == slug)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    return query.first() is not None


def generate_unique_slug(base_slug, model, exclude_id=None):
    """
    生成唯一的 slug，如果已存在则添加数字后缀

    参数:
        base_slug (str): 已经过 slugify 的基础 slug
        model (db.Model): 需要检查唯一性的 SQLAlchemy 模型
        exclude_id (int, optional): 更新时排除的 ID

    返回:
        str: 唯一的 slug
    """
    slug = base_slug
    counter = 1

    while slug_exists(slug, model, exclude_id):
        slug = f"{base_slug}-{counter}"
        counter += 1

        # 防止无限循环，超过一定次数后使用时间戳
        if counter > 100:
            slug = f"{base_slug}-{int(time.time())}"
            break

    return slug

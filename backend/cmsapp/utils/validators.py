"""
请求数据校验工具。

Validator 按字段收集错误，最后通过 raise_if_errors() 一次性抛出 ValidationFailed，
这样所有校验都在写库之前完成。
"""
import re

from cmsapp.utils.errors import ValidationFailed

HEX_COLOR_PATTERN = re.compile(r'^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$')
EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

_TRUE_VALUES = ('1', 'true', 'yes', 'on')
_FALSE_VALUES = ('0', 'false', 'no', 'off')


def parse_bool(value, default=None):
    """解析查询参数中的布尔值，无法识别时返回 default"""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value = str(value).strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return default


def parse_positive_int(value, field, default):
    if value is None or value == '':
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationFailed({field: '必须是整数'})
    if number < 1:
        raise ValidationFailed({field: '必须大于等于 1'})
    return number


class Validator:
    def __init__(self, data):
        self.data = data or {}
        self.errors = {}

    def has(self, field):
        return field in self.data

    def error(self, field, message):
        self.errors.setdefault(field, message)

    def string(self, field, max_length=None, min_length=None, required=False, pattern=None, message=None):
        if field not in self.data or self.data[field] is None:
            if required:
                self.error(field, message or f'{field} 不能为空')
            return None
        value = self.data[field]
        if not isinstance(value, str):
            self.error(field, f'{field} 必须是字符串')
            return None
        value = value.strip()
        if required and not value:
            self.error(field, message or f'{field} 不能为空')
            return None
        if min_length is not None and len(value) < min_length:
            self.error(field, message or f'{field} 长度不能少于 {min_length} 个字符')
        elif max_length is not None and len(value) > max_length:
            self.error(field, message or f'{field} 长度不能超过 {max_length} 个字符')
        elif pattern is not None and value and not pattern.match(value):
            self.error(field, message or f'{field} 格式不正确')
        return value

    def integer(self, field, minimum=None, required=False):
        if field not in self.data or self.data[field] is None:
            if required:
                self.error(field, f'{field} 不能为空')
            return None
        value = self.data[field]
        if isinstance(value, bool):
            self.error(field, f'{field} 必须是整数')
            return None
        try:
            number = int(value)
        except (TypeError, ValueError):
            self.error(field, f'{field} 必须是整数')
            return None
        if minimum is not None and number < minimum:
            self.error(field, f'{field} 不能小于 {minimum}')
        return number

    def reference(self, field):
        """外键字段: 允许 None / 空字符串表示清空"""
        if field not in self.data:
            return None
        value = self.data[field]
        if value is None or value == '' or value == 'null':
            return None
        return self.integer(field, minimum=1)

    def boolean(self, field):
        if field not in self.data:
            return None
        value = parse_bool(self.data[field])
        if value is None:
            self.error(field, f'{field} 必须是布尔值')
        return value

    def choice(self, field, choices):
        if field not in self.data or self.data[field] is None:
            return None
        value = self.data[field]
        if value not in choices:
            self.error(field, f'{field} 必须是 {", ".join(choices)} 之一')
            return None
        return value

    def string_list(self, field, item_max_length=None):
        if field not in self.data or self.data[field] is None:
            return None
        value = self.data[field]
        if isinstance(value, str):
            value = [item for item in value.split(',')]
        if not isinstance(value, (list, tuple)):
            self.error(field, f'{field} 必须是数组')
            return None
        items = []
        for item in value:
            if not isinstance(item, str):
                self.error(field, f'{field} 中的每一项必须是字符串')
                return None
            item = item.strip()
            if not item:
                continue
            if item_max_length is not None and len(item) > item_max_length:
                self.error(field, f'{field} 中的每一项不能超过 {item_max_length} 个字符')
                return None
            if item not in items:
                items.append(item)
        return items

    def raise_if_errors(self):
        if self.errors:
            raise ValidationFailed(self.errors)

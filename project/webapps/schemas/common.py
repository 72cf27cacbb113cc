# webapps/schemas/common.py

from webapps.core.exceptions import ValidationError

# больше не влезает в INTEGER SQLite
MAX_ID = 2 ** 63 - 1


def parse_id(raw, name: str = "ID") -> int:
    """
    Идентификатор из пути, формы или JSON: целое в 1..MAX_ID или строка из цифр.
    Всё остальное (в т.ч. bool и "12abc") -> ValidationError.
    """
    value = None
    if isinstance(raw, int) and not isinstance(raw, bool):
        value = raw
    elif isinstance(raw, str) and raw.strip().isdigit():
        value = int(raw)

    if value is None or not 0 < value <= MAX_ID:
        raise ValidationError([f"Invalid {name} format."])
    return value

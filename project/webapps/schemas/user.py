# webapps/schemas/user.py

from pydantic import BaseModel

from webapps.core.exceptions import ValidationError

MIN_PASSWORD_LENGTH = 5
MAX_USERNAME_LENGTH = 64


class UserCreate(BaseModel):
    """
    Данные формы регистрации после проверки.
    """
    username: str
    password: str


class UserResponse(BaseModel):
    """
    Пользователь в ответах API, без хэша пароля.
    """
    id: int
    username: str
    is_admin: bool

    model_config = {
        "from_attributes": True
    }


def parse_registration_form(form) -> UserCreate:
    """
    Все поля обязательны, пароли совпадают, пароль не короче 5 символов.
    Возвращается первая найденная ошибка, как и показывает форма.
    """
    username = (form.get("username") or "").strip()
    password = form.get("password") or ""
    confirm_password = form.get("confirm_password") or ""

    if not username or not password or not confirm_password:
        raise ValidationError(["All fields are required."])
    if len(username) > MAX_USERNAME_LENGTH:
        raise ValidationError(["Username is too long."])
    if password != confirm_password:
        raise ValidationError(["Passwords do not match."])
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError([f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."])

    return UserCreate(username=username, password=password)

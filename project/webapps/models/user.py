# webapps/models/user.py

from sqlalchemy import Column, Integer, String, Boolean
from webapps.utils.database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)  # автоинкремент
    username = Column(String(64), unique=True, nullable=False)  # логин
    password_hash = Column(String, nullable=False)              # хэш пароля
    is_admin = Column(Boolean, default=False, nullable=False)   # флаг админа

# webapps/utils/log.py
# Логирование событий магазина и блога

import os
import datetime
import logging
from decimal import Decimal
from aiologger import Logger
from aiologger.handlers.files import AsyncFileHandler

TRUE_VALUES = ("1", "true", "yes")


def to_loggable(obj):
    """
    Приводит данные события к виду, пригодному для строки лога:
    словари и списки рекурсивно, Pydantic через model_dump,
    даты и Decimal строкой, ORM-объекты по публичным атрибутам.
    """
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, (Decimal, datetime.date)):
        return str(obj)
    if isinstance(obj, dict):
        return {k: to_loggable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [to_loggable(v) for v in obj]
    if hasattr(obj, "model_dump"):
        return to_loggable(obj.model_dump())
    if hasattr(obj, "__dict__"):
        # _sa_instance_state и прочее приватное не пишем
        return {k: to_loggable(v) for k, v in vars(obj).items() if not k.startswith("_")}
    return f"<{type(obj).__name__}>"


class Log:
    """
    Файловый лог: один файл на сутки, LOG_DIR/YYYY/MM/DD.log.
    Строка: "04.10.2025 12:00:00 target: message: {data}".

    Асинхронные методы (log_info / log_warning / log_error) пишут через aiologger
    и используются внутри запросов. log_info_sync - для старта и остановки
    приложения, когда писать через event loop ещё (или уже) нельзя.
    """

    def __init__(self, log_dir: str | None = None, log_print: str | bool | None = None):
        self.log_dir = log_dir or "webapps/log"
        os.makedirs(self.log_dir, exist_ok=True)
        if log_print is None:
            log_print = os.getenv("LOG_PRINT", "0")
        self.log_print = str(log_print).lower() in TRUE_VALUES
        self._logger: Logger | None = None
        self._logger_path: str | None = None

    def build_log_path(self, now: datetime.datetime) -> str:
        day_dir = os.path.join(self.log_dir, f"{now:%Y}", f"{now:%m}")
        os.makedirs(day_dir, exist_ok=True)
        return os.path.join(day_dir, f"{now:%d}.log")

    @staticmethod
    def format_line(target: str, message: str, data, now: datetime.datetime) -> str:
        line = f"{now:%d.%m.%Y %H:%M:%S} {target}: {message}"
        if data:
            line += f": {to_loggable(data)}"
        return line

    def _echo(self, line: str, is_console: bool | None):
        if self.log_print if is_console is None else is_console:
            print(line)

    async def _day_logger(self, now: datetime.datetime) -> Logger:
        """Логгер текущих суток; с наступлением новых суток файл переоткрывается."""
        log_path = self.build_log_path(now)
        if self._logger_path != log_path:
            if self._logger is not None:
                await self._logger.shutdown()
            self._logger = Logger(name=f"webapps:{log_path}")
            self._logger.add_handler(AsyncFileHandler(filename=log_path, mode="a", encoding="utf-8"))
            self._logger_path = log_path
        return self._logger

    async def _write(self, prefix: str, target: str, message: str, data, is_console: bool | None):
        now = datetime.datetime.now()
        line = self.format_line(target, f"{prefix}{message}", data, now)
        logger = await self._day_logger(now)
        await logger.info(line)
        self._echo(line, is_console)

    async def log_info(self, target: str = "", message: str = "", data: dict | None = None, is_console: bool = None):
        await self._write("", target, message, data, is_console)

    async def log_warning(self, target: str = "", message: str = "", data: dict | None = None, is_console: bool = None):
        await self._write("WARNING: ", target, message, data, is_console)

    async def log_error(self, target: str = "", message: str = "", data: dict | None = None, is_console: bool = True):
        await self._write("ERROR: ", target, message, data, is_console)

    def log_info_sync(self, target: str = "", message: str = "", data: dict | None = None, is_console: bool = None):
        now = datetime.datetime.now()
        log_path = self.build_log_path(now)
        line = self.format_line(target, message, data, now)

        # логгер stdlib на каждый файл, иначе два Log с разными log_dir пишут в один
        logger = logging.getLogger(f"webapps.sync:{log_path}")
        logger.setLevel(logging.INFO)
        logger.propagate = False
        if not logger.handlers:
            handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
            handler.setFormatter(logging.Formatter("%(message)s"))
            logger.addHandler(handler)

        logger.info(line)
        self._echo(line, is_console)

    async def shutdown(self):
        if self._logger is not None:
            await self._logger.shutdown()
        self._logger = None
        self._logger_path = None

# webapps/middleware/request_log.py

from typing import Awaitable, Callable, Optional

from starlette.types import ASGIApp, Message, Receive, Scope, Send

class RequestLogMiddleware:
    """
    Пишет в лог строку на каждый HTTP-запрос:
    Method: GET | URL: /tracking/1 | Status: 200

    log_suffix(app.state) добавляет к строке свой хвост (магазин пишет
    "Orders Count: N"); он считается до обработки запроса.
    """

    def __init__(self, app: ASGIApp, log_suffix: Optional[Callable[..., Awaitable[str]]] = None):
        self.app = app
        self.log_suffix = log_suffix

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        # лог кладётся в state в lifespan; до старта его ещё нет
        state = scope["app"].state if "app" in scope else None
        log = getattr(state, "log", None)
        suffix = await self.log_suffix(state) if log and self.log_suffix else None

        status_holder = {"code": 500}

        async def send_wrapper(message: Message):
            if message["type"] == "http.response.start":
                status_holder["code"] = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            if log:
                url = scope["path"]
                if scope.get("query_string"):
                    url += "?" + scope["query_string"].decode("latin-1")
                line = f"Method: {scope['method']} | URL: {url} | Status: {status_holder['code']}"
                if suffix:
                    line += f" | {suffix}"
                await log.log_info("request", line, is_console=False)

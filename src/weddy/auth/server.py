"""CLIログイン用のローカルコールバック受信サーバー。"""

from __future__ import annotations

import asyncio
from http.server import BaseHTTPRequestHandler, HTTPServer
import threading
from urllib.parse import urlparse


class _CallbackServer(HTTPServer):
    def __init__(self, server_address: tuple[str, int], expected_path: str) -> None:
        super().__init__(server_address, _CallbackHandler)
        self.expected_path = expected_path
        self.callback_path: str | None = None
        self.event = threading.Event()


class _CallbackHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:  # noqa: N802
        parsed = urlparse(self.path)
        server = self.server
        if not isinstance(server, _CallbackServer) or parsed.path != server.expected_path:
            self.send_response(404)
            self.end_headers()
            self.wfile.write(b"Not Found")
            return

        # 最初のリダイレクトだけを採用する
        if not server.event.is_set():
            server.callback_path = self.path
            server.event.set()

        self.send_response(200)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.end_headers()
        self.wfile.write("ログイン処理を受け付けました。このウィンドウは閉じて構いません。".encode("utf-8"))

    def log_message(self, format: str, *args: object) -> None:  # noqa: A003
        return


class CallbackListener:
    """登録済みリダイレクトURIでプロバイダからのリダイレクトを待ち受ける。"""

    def __init__(self, redirect_uri: str) -> None:
        parsed = urlparse(redirect_uri)
        if parsed.scheme != "http" or parsed.hostname not in ("localhost", "127.0.0.1"):
            raise ValueError(f"ローカルで待ち受けできないリダイレクトURIです: {redirect_uri}")
        self._redirect_uri = redirect_uri
        self._host = "127.0.0.1" if parsed.hostname == "localhost" else parsed.hostname
        self._port = parsed.port or 80
        self._path = parsed.path or "/"
        self._server: _CallbackServer | None = None
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._server = _CallbackServer((self._host, self._port), self._path)
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

    async def wait(self, timeout: float) -> str:
        """リダイレクトを待ち、受信したコールバックURLを返す。

        Raises:
            TimeoutError: タイムアウトした場合。
        """

        if self._server is None:
            raise RuntimeError("start() を先に呼び出してください。")
        received = await asyncio.to_thread(self._server.event.wait, timeout)
        if not received or self._server.callback_path is None:
            raise TimeoutError("ログインのコールバックがタイムアウトしました。")
        parsed = urlparse(self._redirect_uri)
        return f"{parsed.scheme}://{parsed.netloc}{self._server.callback_path}"

    def stop(self) -> None:
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=1)
        self._server = None
        self._thread = None

    def __enter__(self) -> "CallbackListener":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

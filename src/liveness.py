import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from config import PORT


class LivenessHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:
        body = b"ok"
        self.send_response(200)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args) -> None:
        logging.debug(f"liveness: {format % args}")


def start_liveness_server(port: int = PORT, host: str = "") -> ThreadingHTTPServer:
    """Bind the liveness listener and serve it from a daemon thread."""
    server = ThreadingHTTPServer((host, port), LivenessHandler)
    thread = threading.Thread(target=server.serve_forever, name="liveness", daemon=True)
    thread.start()
    return server

import requests

from liveness import start_liveness_server


def test_liveness_endpoint_answers_ok():
    server = start_liveness_server(port=0, host="127.0.0.1")
    try:
        host, port = server.server_address[:2]
        r = requests.get(f"http://{host}:{port}/", timeout=5)
        assert r.status_code == 200
        assert r.text == "ok"
    finally:
        server.shutdown()
        server.server_close()

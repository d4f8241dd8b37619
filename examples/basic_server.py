"""
Basic HTTP/1.x server example using http1_core.

This example serves a small greeting and an echo endpoint, showing
how handlers drive a ResponseWriter and how keep-alive follows from
the headers they write.

Try it with:
    curl -v http://127.0.0.1:8000/
    curl -v --http1.0 -H "Connection: keep-alive" http://127.0.0.1:8000/
    curl -v -d "hello" http://127.0.0.1:8000/echo
"""

import asyncio
import logging

from http1_core import start_server

# Configure logging
logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)


async def handler(request, writer):
    """Route a request to the greeting or echo response."""
    if request.target == "/echo":
        body = await request.stream.aread()
        content_type = request.headers.get("Content-Type", "application/octet-stream")
    else:
        body = f"Hello from HTTP/{request.http_version}\n".encode()
        content_type = "text/plain; charset=utf-8"

    await writer.write_headers(
        "200 OK",
        {"Content-Type": content_type, "Content-Length": str(len(body))},
    )
    await writer.write_body(body)
    await writer.end()

    logger.info(f"{request.method} {request.target} keep-alive={writer.keep_alive}")


async def main():
    server = await start_server(handler, "127.0.0.1", 8000, read_timeout=15.0)
    async with server:
        await server.serve_forever()


if __name__ == "__main__":
    asyncio.run(main())

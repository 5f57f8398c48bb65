"""
Placebook backend server

Routes:
- GET    /api/flowers                         all records
- POST   /api/flowers                         store one record (201)
- GET    /api/flowers/nearby?lat=&lng=&distance=  records within distance meters
- DELETE /api/flowers                         clear the collection
- GET    /health                              liveness + record count

Run with ``placebook-server --port 3000``.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..errors import InvalidArtRecordError
from .collection import ArtCollection, parse_float

logger = logging.getLogger(__name__)

DEFAULT_NEARBY_DISTANCE = 20.0


def create_app(collection: Optional[ArtCollection] = None) -> Starlette:
    """Build the ASGI app around a collection (in-memory if none given)."""
    if collection is None:
        collection = ArtCollection()

    async def list_flowers(request: Request) -> JSONResponse:
        return JSONResponse(collection.all())

    async def create_flower(request: Request) -> JSONResponse:
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return JSONResponse({"error": "Body must be JSON"}, status_code=400)
        try:
            stored = collection.add(payload)
        except InvalidArtRecordError as e:
            return JSONResponse({"error": str(e)}, status_code=400)
        logger.info("Stored %s %s", stored["artType"], stored["id"])
        return JSONResponse(stored, status_code=201)

    async def nearby_flowers(request: Request) -> JSONResponse:
        lat = parse_float(request.query_params.get("lat"))
        lng = parse_float(request.query_params.get("lng"))
        if lat is None or lng is None:
            return JSONResponse({"error": "Missing latitude or longitude"}, status_code=400)
        distance = parse_float(request.query_params.get("distance"))
        if distance is None:
            distance = DEFAULT_NEARBY_DISTANCE
        return JSONResponse(collection.nearby(lat, lng, distance))

    async def delete_flowers(request: Request) -> JSONResponse:
        collection.clear()
        logger.info("All records deleted")
        return JSONResponse({"message": "All flowers deleted"})

    async def health(request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok", "count": len(collection)})

    routes = [
        Route("/api/flowers", list_flowers, methods=["GET"]),
        Route("/api/flowers", create_flower, methods=["POST"]),
        Route("/api/flowers", delete_flowers, methods=["DELETE"]),
        Route("/api/flowers/nearby", nearby_flowers, methods=["GET"]),
        Route("/health", health, methods=["GET"]),
    ]
    middleware = [
        Middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"]),
    ]
    app = Starlette(routes=routes, middleware=middleware)
    app.state.collection = collection
    return app


def main():
    """Entry point."""
    import uvicorn

    from ..config import ConfigManager

    parser = argparse.ArgumentParser(description="Placebook backend server")
    parser.add_argument("--config", type=Path, default=None, help="Config file (YAML or JSON)")
    parser.add_argument("--host", default=None, help="Bind host (default from config: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default from config: 3000)")
    parser.add_argument("--data-file", default=None, help="JSON file holding the collection")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(name)s: %(message)s")

    server_config = ConfigManager(args.config).load().server
    host = args.host or server_config.host
    port = args.port or server_config.port
    data_file = args.data_file or server_config.data_file

    app = create_app(ArtCollection(data_file))
    logger.info("Server running on http://%s:%d (data: %s)", host, port, data_file)
    try:
        uvicorn.run(app, host=host, port=port, log_level="info")
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr, flush=True)


if __name__ == "__main__":
    main()

"""ASGI entrypoint: uvicorn hotelero.api.app:app"""

from .factory import create_app

app = create_app()

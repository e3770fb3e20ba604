import os

from pointviewer import constants

# Origins allowed to read viewer state (the deck.gl front end)
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "POINTVIEWER_CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    ).split(",")
    if origin.strip()
]

DEFAULT_ADDRESS = constants.DEFAULT_ADDRESS
DEFAULT_BUFFER_KM = constants.DEFAULT_BUFFER_KM

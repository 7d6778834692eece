# storefront/offline/classify.py
import re
from enum import Enum

import httpx

IMAGE_PATH = re.compile(r"\.(jpg|jpeg|png|gif|svg|webp)$", re.IGNORECASE)


class RequestKind(str, Enum):
    SHELL = "shell"
    API = "api"
    IMAGE = "image"
    NAVIGATION = "navigation"
    OTHER = "other"


def is_image_request(request: httpx.Request) -> bool:
    if request.headers.get("sec-fetch-dest") == "image":
        return True
    if request.headers.get("accept", "").startswith("image/"):
        return True
    return bool(IMAGE_PATH.search(request.url.path))


def is_navigation_request(request: httpx.Request) -> bool:
    if request.method != "GET":
        return False
    if request.headers.get("sec-fetch-mode") == "navigate":
        return True
    return request.headers.get("sec-fetch-dest") == "document"


def classify(request: httpx.Request, shell_paths=(), api_prefix: str = "/api/") -> RequestKind:
    """
    Jedna klasyfikacja na request, kolejnosc ma znaczenie:
    obrazki przed API (np. /api/products/1/image.png to obrazek).
    """
    path = request.url.path
    if is_image_request(request):
        return RequestKind.IMAGE
    if path.startswith(api_prefix):
        return RequestKind.API
    if is_navigation_request(request):
        return RequestKind.NAVIGATION
    if request.method == "GET" and path in shell_paths:
        return RequestKind.SHELL
    return RequestKind.OTHER

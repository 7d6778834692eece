import httpx
import pytest

from storefront.offline.classify import RequestKind, classify

SHELL = ("/", "/index.html", "/manifest.json", "/offline.html")


def req(path, method="GET", **headers):
    return httpx.Request(method, f"http://shop.test{path}", headers=headers)


@pytest.mark.parametrize(
    "request_, kind",
    [
        (req("/static/logo.PNG"), RequestKind.IMAGE),
        (req("/api/products/3/photo.webp"), RequestKind.IMAGE),
        (req("/cdn/thumb", **{"sec-fetch-dest": "image"}), RequestKind.IMAGE),
        (req("/cdn/thumb", accept="image/avif,image/*"), RequestKind.IMAGE),
        (req("/api/products"), RequestKind.API),
        (req("/api/cart/add", "POST"), RequestKind.API),
        (req("/products/12", **{"sec-fetch-mode": "navigate"}), RequestKind.NAVIGATION),
        (req("/checkout", **{"sec-fetch-dest": "document"}), RequestKind.NAVIGATION),
        (req("/manifest.json"), RequestKind.SHELL),
        (req("/"), RequestKind.SHELL),
        (req("/static/app.js"), RequestKind.OTHER),
        (req("/manifest.json", "POST"), RequestKind.OTHER),
    ],
)
def test_classify(request_, kind):
    assert classify(request_, SHELL) == kind


def test_navigation_beats_shell_for_same_path():
    assert classify(req("/", **{"sec-fetch-mode": "navigate"}), SHELL) == RequestKind.NAVIGATION


def test_post_navigation_is_not_navigation():
    assert classify(req("/login", "POST", **{"sec-fetch-mode": "navigate"}), SHELL) == RequestKind.OTHER

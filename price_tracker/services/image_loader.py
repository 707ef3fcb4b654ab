# price_tracker/services/image_loader.py

"""Checks whether a product image URL actually serves an image."""

import logging

from curl_cffi import requests as curl_requests

from price_tracker.config.settings import Settings

logger = logging.getLogger("price_tracker.images")


class ImageLoader:
    """Fetches image URLs the way a browser ``<img>`` tag would."""

    def __init__(self) -> None:
        self.session = curl_requests.Session(
            impersonate=Settings.IMPERSONATE_BROWSER
        )

    def load(self, url: str) -> bool:
        """True when *url* answers with an ``image/*`` response."""
        try:
            resp = self.session.get(
                url,
                headers={"Accept": "image/avif,image/webp,image/*,*/*;q=0.8"},
                timeout=Settings.IMAGE_PROBE_TIMEOUT,
            )
        except Exception as exc:
            logger.debug("Image request failed for %s: %s", url, exc)
            return False

        content_type = resp.headers.get("content-type", "")
        if resp.status_code >= 400 or not content_type.startswith("image/"):
            logger.debug(
                "Image unusable for %s (HTTP %d, %s)",
                url, resp.status_code, content_type or "no content-type",
            )
            return False
        return True

    def close(self) -> None:
        self.session.close()

"""
Marketplace platforms handled by the pipeline.
"""

from enum import Enum


class Platform(str, Enum):
    """Explicit platform tag used to dispatch normalizers, clients and vocabularies."""

    FACEBOOK = "FACEBOOK"
    SHOPEE = "SHOPEE"
    TIKTOK = "TIKTOK"

    @property
    def tag(self) -> str:
        """Short prefix used when synthesizing identifiers (e.g. FB_0901234567)."""
        return _TAGS[self]

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_TAGS = {
    Platform.FACEBOOK: "FB",
    Platform.SHOPEE: "SP",
    Platform.TIKTOK: "TT",
}

_DISPLAY_NAMES = {
    Platform.FACEBOOK: "Facebook",
    Platform.SHOPEE: "Shopee",
    Platform.TIKTOK: "TikTok",
}

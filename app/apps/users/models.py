from pydantic import Field

from apps.base.models import BaseDocument


class User(BaseDocument):
    """Per user portal preferences."""

    dismissed_banners: dict[str, object] | None = Field(None, alias="dismissedBanners")
    preferences: dict[str, object] | None = None

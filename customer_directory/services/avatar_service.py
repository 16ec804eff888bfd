import hashlib
from urllib.parse import urlencode

from customer_directory.core.config import settings
from customer_directory.domain.customer import CustomerRecord


class GravatarService:
    """Resolves avatar URLs from the account email, Gravatar style."""

    BASE_URL = "https://secure.gravatar.com/avatar/"

    def __init__(
        self,
        size: int = settings.AVATAR_SIZE,
        default: str = settings.AVATAR_DEFAULT,
        rating: str = settings.AVATAR_RATING,
    ) -> None:
        self.size = size
        self.default = default
        self.rating = rating

    def __call__(self, record: CustomerRecord) -> str:
        email_hash = hashlib.md5(record.email.strip().lower().encode("utf-8")).hexdigest()
        query = urlencode({"s": self.size, "d": self.default, "r": self.rating})
        return f"{self.BASE_URL}{email_hash}?{query}"

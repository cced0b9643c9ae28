"""
Parsing of store locations ("s3://bucket/some/prefix/") into the bucket and key prefix
that scope every encode/restore/delete operation.
"""

from dataclasses import dataclass
from urllib.parse import urlparse

from keyvfs.exceptions import InvalidLocationError

LOCATION_SCHEME = "s3://"


@dataclass(frozen=True)
class Namespace:
    """
    A bucket and the key prefix inside it.

    The prefix is either empty or ends with "/".
    """

    bucket_name: str
    prefix: str

    @property
    def location(self) -> str:
        """The location string this namespace was parsed from, in its normalised form."""
        return f"{LOCATION_SCHEME}{self.bucket_name}/{self.prefix}"


def parse_location(location: str) -> Namespace:
    """
    Parse a location of the form 's3://bucket/prefix...' into a Namespace.

    Leading slashes are stripped from the prefix and a trailing slash is added when it is non-empty,
    so 's3://bucket/a/b' and 's3://bucket//a/b/' both give the prefix 'a/b/'.
    """
    if not location.startswith(LOCATION_SCHEME):
        raise InvalidLocationError(location=location)

    parsed = urlparse(location)
    if not parsed.netloc:
        raise InvalidLocationError(location=location, reason="no bucket name given")

    prefix = parsed.path.lstrip("/")
    if prefix and not prefix.endswith("/"):
        prefix += "/"

    return Namespace(bucket_name=parsed.netloc, prefix=prefix)

"""Character-encoding detection and attribute validation."""

import codecs
import logging
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from geo_partition.errors import ConfigurationError, FormatError
from geo_partition.partition.types import DEFAULT_ENCODING

logger = logging.getLogger(__name__)

# Checked in order; the UTF-8 mark is the longest.
BYTE_ORDER_MARKS: tuple[tuple[bytes, str], ...] = (
    (codecs.BOM_UTF8, "utf-8"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
)


@dataclass(frozen=True, slots=True)
class TextEncoding:
    """Codec used for a text source, plus the BOM found in front of it."""

    name: str
    bom: bytes = b""


class EncodingPolicy(StrEnum):
    """What to do with an attribute value the target encoding cannot represent."""

    TRUNCATE = "truncate"
    SUBSTITUTE = "substitute"
    FAIL = "fail"

    @classmethod
    def parse(cls, value: "str | EncodingPolicy") -> "EncodingPolicy":
        try:
            return cls(str(value).lower())
        except ValueError:
            choices = ", ".join(policy.value for policy in cls)
            raise ConfigurationError(
                f"unknown encoding policy {value!r} (expected one of: {choices})"
            ) from None


def normalize_encoding(encoding: str) -> str:
    """Return the canonical codec name, rejecting unknown encodings."""
    try:
        return codecs.lookup(encoding).name
    except LookupError:
        raise ConfigurationError(f"unknown encoding: {encoding!r}") from None


def sniff_encoding(path: str | Path) -> TextEncoding:
    """Detect UTF-8/UTF-16 byte-order marks, defaulting to UTF-8."""
    with open(path, "rb") as handle:
        head = handle.read(4)

    for bom, name in BYTE_ORDER_MARKS:
        if head.startswith(bom):
            logger.debug("Detected %s byte-order mark in %s", name, path)
            return TextEncoding(name, bom)

    logger.debug("No byte-order mark in %s, assuming %s", path, DEFAULT_ENCODING)
    return TextEncoding(DEFAULT_ENCODING)


def resolve_text_encoding(path: str | Path, encoding: str | None) -> TextEncoding:
    """Use the caller's encoding when given, otherwise sniff the source."""
    if encoding:
        return TextEncoding(normalize_encoding(encoding))
    return sniff_encoding(path)


def sanitize_value(value: str, encoding: str, policy: EncodingPolicy) -> tuple[str, bool]:
    """
    Make ``value`` encodable in ``encoding`` according to ``policy``.

    Returns the (possibly shortened or rewritten) value and whether it changed.
    Raises FormatError under the ``fail`` policy.
    """
    try:
        value.encode(encoding)
    except UnicodeEncodeError as exc:
        if policy is EncodingPolicy.FAIL:
            raise FormatError(
                f"value {value!r} cannot be encoded as {encoding} "
                f"(character {value[exc.start]!r} at position {exc.start})"
            ) from exc
        if policy is EncodingPolicy.TRUNCATE:
            return value[: exc.start], True
        return value.encode(encoding, errors="replace").decode(encoding), True
    return value, False

"""CIDR parsing, validation and prefix-bound enforcement.

Raw feed entries are turned into ``ip/prefix`` strings or dropped. The IP text
is never rewritten: two spellings of one IPv6 address stay distinct strings.

Bounds:
    IPv4: /8 to /32, bare addresses become /32.
    IPv6: /12 to /64, bare addresses are dropped unless promotion to /64 is on.
"""

import ipaddress
import re
from dataclasses import dataclass
from enum import Enum

IPV4_MIN_PREFIX = 8
IPV4_MAX_PREFIX = 32
IPV6_MIN_PREFIX = 12
IPV6_MAX_PREFIX = 64
IPV6_PROMOTED_PREFIX = 64

_IPV4_SHAPE = re.compile(r"\d{1,3}(?:\.\d{1,3}){3}", re.ASCII)
_DIGITS = re.compile(r"\d+", re.ASCII)
_PREFIX_DIGITS = re.compile(r"\d{1,3}", re.ASCII)


class AddressFamily(str, Enum):
    """Address family of an entry's ip-part."""

    IPV4 = "ipv4"
    IPV6 = "ipv6"
    UNKNOWN = "unknown"


class DropReason(str, Enum):
    """Why a raw entry was excluded from the desired set."""

    EMPTY = "empty"
    BAD_PREFIX = "bad_prefix"
    UNKNOWN_FAMILY = "unknown_family"
    BAD_OCTET = "bad_octet"
    IPV4_PREFIX_OUT_OF_RANGE = "ipv4_prefix_out_of_range"
    IPV6_PREFIX_OUT_OF_RANGE = "ipv6_prefix_out_of_range"
    IPV6_PREFIX_UNSPECIFIED = "ipv6_prefix_unspecified"


@dataclass(frozen=True)
class ParsedCIDR:
    """An entry split into ip-part and optional prefix."""

    ip: str
    prefix: int | None


@dataclass(frozen=True)
class NormalizationResult:
    """Outcome of normalizing one raw entry.

    Exactly one of ``value`` and ``reason`` is set.
    """

    raw: str
    value: str | None = None
    reason: DropReason | None = None

    @property
    def accepted(self) -> bool:
        """Whether the entry produced a normalized CIDR."""
        return self.value is not None


def parse_cidr(entry: str) -> ParsedCIDR | None:
    """Split an entry on its first slash.

    The prefix must be a plain decimal integer that survives a round trip
    through ``int``: ``"032"``, ``"+24"``, ``" 24"`` and ``"24/1"`` are refused.
    No valid prefix has more than three digits, so longer ones are refused
    before conversion.

    Args:
        entry: Raw entry text.

    Returns:
        ParsedCIDR, or None if the entry is empty or the prefix is malformed.
    """
    text = str(entry).strip()
    if not text:
        return None

    ip, slash, prefix_text = text.partition("/")
    if not slash:
        return ParsedCIDR(ip=ip, prefix=None)

    if not _PREFIX_DIGITS.fullmatch(prefix_text):
        return None
    prefix = int(prefix_text)
    if str(prefix) != prefix_text:
        return None
    return ParsedCIDR(ip=ip, prefix=prefix)


def _is_ipv4_shape(ip: str) -> bool:
    if not _IPV4_SHAPE.fullmatch(ip):
        return False
    return all(int(octet) <= 255 for octet in ip.split("."))


def _is_ipv6_shape(ip: str) -> bool:
    # Zone ids and brackets are not accepted as part of the address text
    if not ip or "%" in ip or "[" in ip or "]" in ip or ip != ip.strip():
        return False
    try:
        ipaddress.IPv6Address(ip)
    except ValueError:
        return False
    return True


def address_family(ip: str) -> AddressFamily:
    """Classify an ip-part (without prefix).

    Args:
        ip: Address text.

    Returns:
        The detected AddressFamily.
    """
    if _is_ipv4_shape(ip):
        return AddressFamily.IPV4
    if _is_ipv6_shape(ip):
        return AddressFamily.IPV6
    return AddressFamily.UNKNOWN


def _normalize_ipv4(raw: str, ip: str, prefix: int | None) -> NormalizationResult:
    effective = IPV4_MAX_PREFIX if prefix is None else prefix
    if not IPV4_MIN_PREFIX <= effective <= IPV4_MAX_PREFIX:
        return NormalizationResult(raw, reason=DropReason.IPV4_PREFIX_OUT_OF_RANGE)

    octets = ip.split(".")
    if len(octets) != 4:
        return NormalizationResult(raw, reason=DropReason.BAD_OCTET)
    for octet in octets:
        if not _DIGITS.fullmatch(octet) or int(octet) > 255:
            return NormalizationResult(raw, reason=DropReason.BAD_OCTET)

    return NormalizationResult(raw, value=f"{ip}/{effective}")


def _normalize_ipv6(
    raw: str, ip: str, prefix: int | None, allow_promote: bool
) -> NormalizationResult:
    if prefix is None:
        if not allow_promote:
            return NormalizationResult(raw, reason=DropReason.IPV6_PREFIX_UNSPECIFIED)
        prefix = IPV6_PROMOTED_PREFIX

    if not IPV6_MIN_PREFIX <= prefix <= IPV6_MAX_PREFIX:
        return NormalizationResult(raw, reason=DropReason.IPV6_PREFIX_OUT_OF_RANGE)

    return NormalizationResult(raw, value=f"{ip}/{prefix}")


def classify_entry(
    raw_entry: str,
    *,
    allow_promote_ipv6_to_slash64: bool = False,
) -> NormalizationResult:
    """Normalize a raw entry and report why it was dropped, if it was.

    Args:
        raw_entry: Entry as fetched from a feed.
        allow_promote_ipv6_to_slash64: Treat bare IPv6 addresses as /64.

    Returns:
        NormalizationResult carrying either the CIDR or a DropReason.
    """
    raw = str(raw_entry).strip()
    if not raw:
        return NormalizationResult(raw, reason=DropReason.EMPTY)

    parsed = parse_cidr(raw)
    if parsed is None:
        return NormalizationResult(raw, reason=DropReason.BAD_PREFIX)

    family = address_family(parsed.ip)
    if family is AddressFamily.IPV4:
        return _normalize_ipv4(raw, parsed.ip, parsed.prefix)
    if family is AddressFamily.IPV6:
        return _normalize_ipv6(
            raw, parsed.ip, parsed.prefix, allow_promote_ipv6_to_slash64
        )
    return NormalizationResult(raw, reason=DropReason.UNKNOWN_FAMILY)


def normalize(
    raw_entry: str,
    *,
    allow_promote_ipv6_to_slash64: bool = False,
) -> str | None:
    """Normalize a raw entry into ``ip/prefix`` or reject it.

    Args:
        raw_entry: Entry as fetched from a feed.
        allow_promote_ipv6_to_slash64: Treat bare IPv6 addresses as /64.

    Returns:
        Normalized CIDR string, or None if the entry is invalid.

    Example:
        >>> normalize("203.0.113.5")
        '203.0.113.5/32'
        >>> normalize("2001:db8::") is None
        True
    """
    return classify_entry(
        raw_entry,
        allow_promote_ipv6_to_slash64=allow_promote_ipv6_to_slash64,
    ).value

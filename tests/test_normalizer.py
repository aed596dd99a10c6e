"""Tests for CIDR normalization."""

import pytest

from relay_list_sync.normalizer import (
    AddressFamily,
    DropReason,
    ParsedCIDR,
    address_family,
    classify_entry,
    normalize,
    parse_cidr,
)


class TestParseCIDR:
    """Tests for splitting entries into ip and prefix."""

    def test_no_prefix(self):
        """Test entry without a slash keeps the whole text as ip."""
        assert parse_cidr("203.0.113.5") == ParsedCIDR(ip="203.0.113.5", prefix=None)

    def test_with_prefix(self):
        """Test entry with a prefix."""
        assert parse_cidr("203.0.113.0/24") == ParsedCIDR(ip="203.0.113.0", prefix=24)

    def test_trims_surrounding_whitespace(self):
        """Test surrounding whitespace is ignored."""
        assert parse_cidr("  10.0.0.0/8 \t") == ParsedCIDR(ip="10.0.0.0", prefix=8)

    def test_empty(self):
        """Test empty and blank entries."""
        assert parse_cidr("") is None
        assert parse_cidr("   ") is None

    @pytest.mark.parametrize(
        "entry",
        ["1.2.3.0/032", "1.2.3.0/+24", "1.2.3.0/-1", "1.2.3.0/", "1.2.3.0/ 24",
         "1.2.3.0/24 x", "1.2.3.0/2a", "1.2.3.0/24/8", "1.2.3.0/1e1", "1.2.3.0/24.0",
         "1.2.3.0/0024", "1.2.3.0/" + "1" * 5000],
    )
    def test_malformed_prefix(self, entry):
        """Test prefixes that do not round-trip as plain integers."""
        assert parse_cidr(entry) is None

    def test_oversized_prefix(self):
        """Test a prefix too long to be any valid length is refused."""
        assert parse_cidr("1.2.3.0/" + "1" * 5000) is None
        assert parse_cidr("2001:db8::/0128") is None
        assert classify_entry("1.2.3.0/" + "9" * 5000).reason == DropReason.BAD_PREFIX
        assert normalize("2001:db8::/" + "6" * 4400) is None

    def test_empty_ip_part(self):
        """Test an empty ip-part parses but has no address."""
        assert parse_cidr("/24") == ParsedCIDR(ip="", prefix=24)


class TestAddressFamily:
    """Tests for address family detection."""

    def test_ipv4(self):
        """Test dotted quads are IPv4."""
        assert address_family("192.0.2.1") == AddressFamily.IPV4
        assert address_family("0.0.0.0") == AddressFamily.IPV4
        assert address_family("255.255.255.255") == AddressFamily.IPV4

    def test_ipv6_forms(self):
        """Test full, compressed and mixed IPv6 forms."""
        assert address_family("2001:0db8:0000:0000:0000:0000:0000:0001") == AddressFamily.IPV6
        assert address_family("2001:db8::") == AddressFamily.IPV6
        assert address_family("::") == AddressFamily.IPV6
        assert address_family("::ffff:192.0.2.1") == AddressFamily.IPV6
        assert address_family("2001:DB8::A") == AddressFamily.IPV6

    @pytest.mark.parametrize(
        "ip",
        ["", "not-an-ip", "12345", "1.2.3", "1.2.3.4.5", "256.1.1.1", "1.2.3.-4",
         "[2001:db8::]", "2001:db8::1%eth0", "2001:db8:::1", "1.2.3.4 ", "1..2.3"],
    )
    def test_unknown(self, ip):
        """Test garbage is neither family."""
        assert address_family(ip) == AddressFamily.UNKNOWN


class TestNormalizeIPv4:
    """Tests for IPv4 bound enforcement."""

    def test_with_prefix(self):
        """Test a valid IPv4 CIDR is returned unchanged."""
        assert normalize("203.0.113.0/24") == "203.0.113.0/24"

    def test_without_prefix_defaults_to_32(self):
        """Test a bare IPv4 address becomes a /32."""
        assert normalize("203.0.113.5") == "203.0.113.5/32"

    @pytest.mark.parametrize("prefix", [8, 16, 24, 31, 32])
    def test_prefix_in_range(self, prefix):
        """Test prefixes from 8 to 32 are accepted."""
        assert normalize(f"198.51.100.0/{prefix}") == f"198.51.100.0/{prefix}"

    @pytest.mark.parametrize("prefix", ["0", "7", "33", "64", "-1"])
    def test_prefix_out_of_range(self, prefix):
        """Test prefixes outside 8-32 are rejected."""
        assert normalize(f"10.0.0.0/{prefix}") is None

    def test_below_floor_scenario(self):
        """Test /7 is below the IPv4 floor."""
        assert normalize("10.0.0.0/7") is None

    def test_leading_zero_prefix(self):
        """Test a zero-padded prefix is rejected."""
        assert normalize("203.0.113.0/032") is None

    def test_ip_text_not_rewritten(self):
        """Test host bits and zero-padded octets are preserved."""
        assert normalize("203.0.113.77/24") == "203.0.113.77/24"
        assert normalize("010.001.002.003/24") == "010.001.002.003/24"

    def test_octet_out_of_range(self):
        """Test octets above 255 are rejected."""
        assert normalize("203.0.113.256/24") is None

    def test_reason(self):
        """Test the drop reason for a bad IPv4 prefix."""
        result = classify_entry("10.0.0.0/33")
        assert result.reason == DropReason.IPV4_PREFIX_OUT_OF_RANGE


class TestNormalizeIPv6:
    """Tests for IPv6 bound enforcement."""

    def test_with_prefix(self):
        """Test a valid IPv6 CIDR is returned unchanged."""
        assert normalize("2001:db8::/32") == "2001:db8::/32"

    @pytest.mark.parametrize("prefix", [12, 32, 48, 64])
    def test_prefix_in_range(self, prefix):
        """Test prefixes from 12 to 64 are accepted."""
        assert normalize(f"2001:db8::/{prefix}") == f"2001:db8::/{prefix}"

    @pytest.mark.parametrize("prefix", [0, 11, 65, 128])
    def test_prefix_out_of_range(self, prefix):
        """Test prefixes outside 12-64 are rejected."""
        assert normalize(f"2001:db8::/{prefix}") is None
        assert (
            classify_entry(f"2001:db8::/{prefix}").reason
            == DropReason.IPV6_PREFIX_OUT_OF_RANGE
        )

    def test_no_prefix_without_promotion_is_dropped(self):
        """Test a bare IPv6 address is dropped when promotion is disabled."""
        assert normalize("2001:db8::") is None
        result = classify_entry("2001:db8::")
        assert result.reason == DropReason.IPV6_PREFIX_UNSPECIFIED

    def test_no_prefix_with_promotion(self):
        """Test a bare IPv6 address becomes a /64 when promotion is enabled."""
        assert (
            normalize("2001:db8::", allow_promote_ipv6_to_slash64=True)
            == "2001:db8::/64"
        )

    def test_promotion_does_not_affect_explicit_prefix(self):
        """Test promotion only applies to entries without a prefix."""
        assert (
            normalize("2001:db8::/48", allow_promote_ipv6_to_slash64=True)
            == "2001:db8::/48"
        )
        assert normalize("2001:db8::/65", allow_promote_ipv6_to_slash64=True) is None

    def test_original_text_preserved(self):
        """Test case and compression are not normalized."""
        assert normalize("2001:DB8:0:0::/48") == "2001:DB8:0:0::/48"
        assert normalize("::ffff:192.0.2.0/64") == "::ffff:192.0.2.0/64"

    def test_bracketed_literal_rejected(self):
        """Test an ip-part that already contains brackets is rejected."""
        assert normalize("[2001:db8::]/32") is None
        assert classify_entry("[2001:db8::]/32").reason == DropReason.UNKNOWN_FAMILY


class TestNormalizeGarbage:
    """Tests for entries that are not addresses."""

    @pytest.mark.parametrize(
        "entry",
        ["not-an-ip", "12345", "12345/24", "1.2.3/24", "1.2.3.4.5/24", "/24",
         "1.2.3.0/24/8", "example.com/24", "   "],
    )
    def test_rejected(self, entry):
        """Test garbage entries normalize to None."""
        assert normalize(entry) is None

    def test_reasons(self):
        """Test drop reasons for garbage entries."""
        assert classify_entry("").reason == DropReason.EMPTY
        assert classify_entry("not-an-ip").reason == DropReason.UNKNOWN_FAMILY
        assert classify_entry("1.2.3.0/24/8").reason == DropReason.BAD_PREFIX
        assert classify_entry("1.2.3.0/032").reason == DropReason.BAD_PREFIX

    def test_accepted_result(self):
        """Test an accepted result carries the value and no reason."""
        result = classify_entry(" 203.0.113.0/24 ")
        assert result.accepted is True
        assert result.value == "203.0.113.0/24"
        assert result.reason is None
        assert result.raw == "203.0.113.0/24"

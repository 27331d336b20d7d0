"""Tests for timestamp and checksum helpers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from mailspine.core.hashing import compute_checksum
from mailspine.core.timestamps import coerce_datetime, elapsed_ms, to_iso8601, utc_now


class TestTimestamps:
    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is UTC

    def test_iso_round_trip(self):
        now = utc_now()
        assert coerce_datetime(to_iso8601(now)) == now

    def test_coerce_naive_assumes_utc(self):
        assert coerce_datetime(datetime(2024, 1, 1, 12, 0)).tzinfo is UTC

    def test_coerce_empty(self):
        assert coerce_datetime(None) is None
        assert coerce_datetime("") is None
        assert to_iso8601(None) is None

    def test_elapsed_ms(self):
        start = utc_now()
        assert elapsed_ms(start, start + timedelta(seconds=1.5)) == 1500


class TestChecksum:
    def test_sha256_hex(self):
        digest = compute_checksum("CREATE TABLE t (id INTEGER);")
        assert len(digest) == 64
        assert digest == compute_checksum("CREATE TABLE t (id INTEGER);")

    def test_whitespace_changes_checksum(self):
        assert compute_checksum("SELECT 1;") != compute_checksum("SELECT 1; ")

"""Tests for the creator capability query."""

import httpx
import pytest
from conftest import creator_info, envelope

from tiktok_kit.adapters.tiktok.capabilities import CREATOR_INFO_PATH, fetch_capabilities
from tiktok_kit.domain.enums import PrivacyLevel
from tiktok_kit.errors import CapabilityError, ParseError, TransportError


class TestFetchCapabilities:
    """Tests for fetch_capabilities."""

    @pytest.mark.asyncio
    async def test_returns_snapshot(self, transport, fake_tiktok):
        fake_tiktok.add(CREATOR_INFO_PATH, envelope(creator_info(duet_disabled=True)))

        snapshot = await fetch_capabilities(transport)

        assert snapshot.username == "tiktok"
        assert snapshot.duet_disabled is True
        assert PrivacyLevel.PUBLIC_TO_EVERYONE in snapshot.privacy_levels
        assert len(fake_tiktok.calls(CREATOR_INFO_PATH, "POST")) == 1

    @pytest.mark.asyncio
    async def test_drops_unknown_privacy_levels(self, transport, fake_tiktok):
        fake_tiktok.add(
            CREATOR_INFO_PATH,
            envelope(creator_info(privacy_level_options=["SELF_ONLY", "BOGUS_VALUE"])),
        )

        snapshot = await fetch_capabilities(transport)

        assert snapshot.privacy_levels == {PrivacyLevel.SELF_ONLY}

    @pytest.mark.asyncio
    async def test_rejected_query_raises_capability_error(self, transport, fake_tiktok):
        fake_tiktok.add(
            CREATOR_INFO_PATH,
            envelope(code="spam_risk_too_many_posts", message="Daily post cap reached"),
        )

        with pytest.raises(CapabilityError) as exc_info:
            await fetch_capabilities(transport)

        assert exc_info.value.code == "spam_risk_too_many_posts"
        assert exc_info.value.remote_message == "Daily post cap reached"
        assert exc_info.value.log_id == "202401010000000000000000"

    @pytest.mark.asyncio
    async def test_missing_creator_data_raises_parse_error(self, transport, fake_tiktok):
        fake_tiktok.add(CREATOR_INFO_PATH, envelope())

        with pytest.raises(ParseError):
            await fetch_capabilities(transport)

    @pytest.mark.asyncio
    async def test_network_failure_raises_transport_error(self, transport, fake_tiktok):
        fake_tiktok.add(CREATOR_INFO_PATH, httpx.ReadTimeout("timed out"))

        with pytest.raises(TransportError) as exc_info:
            await fetch_capabilities(transport)

        assert exc_info.value.stage == "capabilities"

"""
Tests for the URL shortening service.

Covers link creation (validation order, aliases, bounded random retry,
write-through caching), cache-first resolution, and owner operations.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis

from shortlink.core.exceptions import (
    AliasTakenError,
    DuplicateShortCodeError,
    GenerationExhaustedError,
    InvalidAliasError,
    InvalidExpiryError,
    InvalidURLError,
    LinkNotFoundError,
    LinkOwnershipError,
    ShortCodeNotFoundError,
    UnsafeURLError,
)
from shortlink.db.models import utcnow
from shortlink.services.code_generator import CodeGenerator
from shortlink.services.link_registry import LinkRegistry
from shortlink.services.resolution_cache import ResolutionCache
from shortlink.services.url_service import MAX_GENERATION_ATTEMPTS, URLShorteningService

from tests.conftest import TEST_BASE_URL, TEST_CACHE_TTL


def make_service(session, cache, generator):
    return URLShorteningService(
        session,
        cache=cache,
        code_generator=generator,
        base_url=TEST_BASE_URL,
        cache_ttl=TEST_CACHE_TTL,
    )


def scripted_generator(*codes):
    """Code generator returning the given codes in order."""
    generator = MagicMock(spec=CodeGenerator)
    generator.generate.side_effect = list(codes)
    generator.base = 62
    generator.default_length = 7
    return generator


@pytest.fixture
def unavailable_cache():
    client = AsyncMock()
    error = redis.exceptions.ConnectionError("Connection refused")
    client.get.side_effect = error
    client.set.side_effect = error
    client.delete.side_effect = error
    return ResolutionCache(client)


class TestCreateShortLink:

    async def test_normalizes_persists_and_caches(self, url_service, session, fake_redis):
        result = await url_service.create_short_link("https://example.com/a/b/")

        assert result.original_url == "https://example.com/a/b"
        assert len(result.short_code) == 7
        assert result.short_url == f"{TEST_BASE_URL}/{result.short_code}"

        stored = await LinkRegistry(session).find_by_short_code(result.short_code)
        assert stored.original_url == "https://example.com/a/b"
        assert fake_redis.store[f"short_code:{result.short_code}"] == "https://example.com/a/b"
        assert fake_redis.ttls[f"short_code:{result.short_code}"] == TEST_CACHE_TTL

    async def test_rejects_non_http_scheme(self, url_service):
        with pytest.raises(InvalidURLError):
            await url_service.create_short_link("ftp://example.com")

    async def test_rejects_scheme_less_input(self, url_service):
        with pytest.raises(InvalidURLError):
            await url_service.create_short_link("example.com/page")

    @pytest.mark.parametrize("url", [
        "http://exa mple.com/x",
        "http://<script>/",
        "http://a%00b.com/",
    ])
    async def test_rejects_malformed_host_without_persisting(self, url_service, session, url):
        with pytest.raises(InvalidURLError):
            await url_service.create_short_link(url, owner_id="user-1")

        assert await LinkRegistry(session).count_by_owner("user-1") == 0

    async def test_rejects_private_host(self, url_service):
        with pytest.raises(UnsafeURLError):
            await url_service.create_short_link("http://192.168.1.1/admin")

    async def test_rejects_localhost_in_any_case(self, url_service):
        with pytest.raises(UnsafeURLError):
            await url_service.create_short_link("http://LocalHost:3000/")

    async def test_rejects_url_too_long(self, url_service):
        with pytest.raises(InvalidURLError):
            await url_service.create_short_link("https://example.com/" + "a" * 2048)

    async def test_stores_owner_title_and_expiry(self, url_service):
        expires_at = utcnow() + timedelta(days=7)
        result = await url_service.create_short_link(
            "https://example.com", owner_id="user-1", title="Docs", expires_at=expires_at
        )
        assert result.link.owner_id == "user-1"
        assert result.link.title == "Docs"
        assert result.link.expires_at == expires_at

    async def test_cache_ttl_capped_by_expiry(self, url_service, fake_redis):
        result = await url_service.create_short_link(
            "https://example.com", expires_at=utcnow() + timedelta(seconds=120)
        )
        assert 0 < fake_redis.ttls[f"short_code:{result.short_code}"] <= 120

    async def test_rejects_past_expiry(self, url_service):
        with pytest.raises(InvalidExpiryError):
            await url_service.create_short_link("https://example.com", expires_at=utcnow() - timedelta(minutes=1))

    async def test_custom_alias(self, url_service):
        result = await url_service.create_short_link("https://example.com", custom_alias="my-link")
        assert result.short_code == "my-link"
        assert result.short_url == f"{TEST_BASE_URL}/my-link"

    async def test_invalid_custom_alias(self, url_service):
        with pytest.raises(InvalidAliasError):
            await url_service.create_short_link("https://example.com", custom_alias="my-link_1")

    @pytest.mark.parametrize("alias", ["health", "docs", "redoc"])
    async def test_rejects_reserved_alias(self, url_service, alias):
        with pytest.raises(InvalidAliasError):
            await url_service.create_short_link("https://example.com", custom_alias=alias)

    async def test_alias_taken_by_active_link(self, url_service):
        await url_service.create_short_link("https://example.com", custom_alias="taken")
        with pytest.raises(AliasTakenError):
            await url_service.create_short_link("https://other.example.com", custom_alias="taken")

    async def test_alias_taken_by_soft_deleted_link(self, url_service):
        created = await url_service.create_short_link(
            "https://example.com", custom_alias="taken", owner_id="user-1"
        )
        await url_service.delete_link(created.link.id, "user-1")

        with pytest.raises(AliasTakenError):
            await url_service.create_short_link("https://other.example.com", custom_alias="taken")

    async def test_alias_race_reports_alias_taken(self, session, cache, code_generator):
        service = make_service(session, cache, code_generator)
        service.registry.exists_by_short_code = AsyncMock(return_value=False)
        service.registry.create = AsyncMock(side_effect=DuplicateShortCodeError("taken"))

        with pytest.raises(AliasTakenError):
            await service.create_short_link("https://example.com", custom_alias="taken")

    async def test_retries_random_code_on_collision(self, session, cache):
        await LinkRegistry(session).create("AAAAAAA", "https://example.com/")
        await session.commit()

        service = make_service(session, cache, scripted_generator("AAAAAAA", "BBBBBBB"))
        result = await service.create_short_link("https://example.com")

        assert result.short_code == "BBBBBBB"

    async def test_generation_exhausted_after_five_attempts(self, session, cache, caplog):
        await LinkRegistry(session).create("AAAAAAA", "https://example.com/")
        await session.commit()

        generator = scripted_generator(*["AAAAAAA"] * MAX_GENERATION_ATTEMPTS)
        service = make_service(session, cache, generator)

        with pytest.raises(GenerationExhaustedError) as exc_info:
            await service.create_short_link("https://example.com")

        assert exc_info.value.attempts == 5
        assert generator.generate.call_count == 5
        assert any(record.levelname == "ERROR" for record in caplog.records)

    async def test_random_code_race_surfaces_duplicate(self, session, cache, code_generator):
        service = make_service(session, cache, code_generator)
        service.registry.create = AsyncMock(side_effect=DuplicateShortCodeError("abcdefg"))

        with pytest.raises(DuplicateShortCodeError):
            await service.create_short_link("https://example.com")

    async def test_succeeds_without_cache(self, session, unavailable_cache, code_generator):
        service = make_service(session, unavailable_cache, code_generator)
        result = await service.create_short_link("https://example.com/x")
        assert result.original_url == "https://example.com/x"


class TestResolveShortCode:

    async def test_end_to_end(self, url_service):
        result = await url_service.create_short_link("https://example.com/a/b/")
        assert await url_service.resolve_short_code(result.short_code) == "https://example.com/a/b"

    async def test_cache_hit_skips_database(self, url_service, cache):
        await cache.set_short_code("cached1", "https://cached.example.com/")
        url_service.registry.find_by_short_code = AsyncMock()

        assert await url_service.resolve_short_code("cached1") == "https://cached.example.com/"
        url_service.registry.find_by_short_code.assert_not_called()

    async def test_cache_miss_repopulates(self, url_service, fake_redis):
        result = await url_service.create_short_link("https://example.com/page")
        fake_redis.store.clear()

        assert await url_service.resolve_short_code(result.short_code) == "https://example.com/page"
        assert fake_redis.store[f"short_code:{result.short_code}"] == "https://example.com/page"

    async def test_unknown_code_not_found(self, url_service):
        with pytest.raises(ShortCodeNotFoundError):
            await url_service.resolve_short_code("nope123")

    async def test_expired_link_not_found(self, url_service, session):
        link = await LinkRegistry(session).create(
            "expired", "https://example.com/", expires_at=utcnow() - timedelta(hours=1)
        )
        await session.commit()
        assert link.is_active

        with pytest.raises(ShortCodeNotFoundError):
            await url_service.resolve_short_code("expired")

    async def test_deleted_link_not_found(self, url_service):
        result = await url_service.create_short_link("https://example.com", owner_id="user-1")
        await url_service.delete_link(result.link.id, "user-1")

        with pytest.raises(ShortCodeNotFoundError):
            await url_service.resolve_short_code(result.short_code)

    async def test_resolves_with_cache_unavailable(self, session, unavailable_cache, code_generator):
        service = make_service(session, unavailable_cache, code_generator)
        result = await service.create_short_link("https://example.com/a/b/")

        assert await service.resolve_short_code(result.short_code) == "https://example.com/a/b"


class TestOwnerOperations:

    async def test_get_link_checks_owner(self, url_service):
        result = await url_service.create_short_link("https://example.com", owner_id="user-1")

        assert (await url_service.get_link(result.link.id, "user-1")).short_code == result.short_code
        with pytest.raises(LinkOwnershipError):
            await url_service.get_link(result.link.id, "user-2")
        with pytest.raises(LinkNotFoundError):
            await url_service.get_link("missing-id", "user-1")

    async def test_anonymous_links_have_no_owner(self, url_service):
        result = await url_service.create_short_link("https://example.com")
        with pytest.raises(LinkOwnershipError):
            await url_service.get_link(result.link.id, "user-1")

    async def test_update_title_keeps_cache(self, url_service, fake_redis):
        result = await url_service.create_short_link("https://example.com", owner_id="user-1")
        link = await url_service.update_link(result.link.id, "user-1", title="Renamed")

        assert link.title == "Renamed"
        assert f"short_code:{result.short_code}" in fake_redis.store

    async def test_deactivate_invalidates_cache(self, url_service, fake_redis):
        result = await url_service.create_short_link("https://example.com", owner_id="user-1")
        await url_service.update_link(result.link.id, "user-1", is_active=False)

        assert f"short_code:{result.short_code}" not in fake_redis.store
        with pytest.raises(ShortCodeNotFoundError):
            await url_service.resolve_short_code(result.short_code)

    async def test_reactivate(self, url_service):
        result = await url_service.create_short_link("https://example.com", owner_id="user-1")
        await url_service.delete_link(result.link.id, "user-1")
        await url_service.update_link(result.link.id, "user-1", is_active=True)

        assert await url_service.resolve_short_code(result.short_code) == "https://example.com/"

    async def test_list_links(self, url_service):
        for _ in range(3):
            await url_service.create_short_link("https://example.com", owner_id="user-1")
        await url_service.create_short_link("https://example.com", owner_id="user-2")

        links, total = await url_service.list_links("user-1", page=2, limit=2)
        assert total == 3
        assert len(links) == 1

    async def test_get_stats(self, url_service):
        result = await url_service.create_short_link("https://example.com")
        link = await url_service.get_stats(result.short_code)
        assert link.click_count == 0

        with pytest.raises(ShortCodeNotFoundError):
            await url_service.get_stats("missing")

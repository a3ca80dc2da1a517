"""Unit tests for SiteRegistrar with in-memory collaborators."""

import asyncio

import pytest

from sitetracker.core.errors import (
    AlreadyExists,
    InvalidRegistration,
    InvalidURL,
    NotFound,
    StorageFailure,
)
from sitetracker.domain.hostnames import derive_site_id
from sitetracker.domain.principal import Principal
from sitetracker.domain.validation import SiteRegistration
from sitetracker.repositories.memory_impl import MemoryTrackedSiteRepository
from sitetracker.services.registrar import SiteRegistrar


class SlowSiteRepository(MemoryTrackedSiteRepository):
    """Store whose calls take longer than any test timeout."""

    async def find_by_owner_and_host(self, owner_id, canonical_host):
        await asyncio.sleep(5)

    async def list_by_owner(self, owner_id):
        await asyncio.sleep(5)


class LostRaceSiteRepository(MemoryTrackedSiteRepository):
    """Store where another writer commits between the pre-check and the insert."""

    def __init__(self, winner):
        super().__init__()
        self._winner = winner

    async def find_by_owner_and_host(self, owner_id, canonical_host):
        return None

    async def create_if_absent(self, site):
        await super().create_if_absent(self._winner)
        return await super().create_if_absent(site)


class BrokenSiteRepository(MemoryTrackedSiteRepository):
    async def find_by_owner_and_host(self, owner_id, canonical_host):
        raise StorageFailure("database unavailable")

    async def get_by_id(self, owner_id, site_id):
        raise ConnectionError("connection reset")


@pytest.mark.unit
class TestRegister:
    """Registration path."""

    async def test_register_creates_untracked_site(self, registrar, owner, clock):
        site = await registrar.register(owner, "My Site", "https://Example.com/path?x=1")

        assert site.canonical_host == "example.com"
        assert site.id == derive_site_id("u1", "example.com")
        assert site.owner_id == "u1"
        assert site.name == "My Site"
        assert site.url == "https://Example.com/path?x=1"
        assert site.tracked is False
        assert site.created_at == clock.current
        assert site.updated_at == site.created_at

    async def test_timestamps_come_from_a_single_clock_read(self, registrar, owner, clock):
        await registrar.register(owner, "My Site", "https://example.com")
        assert clock.calls == 1

    async def test_duplicate_host_rejected(self, registrar, owner):
        first = await registrar.register(owner, "My Site", "https://Example.com/path?x=1")

        with pytest.raises(AlreadyExists) as exc_info:
            await registrar.register(owner, "dup", "http://EXAMPLE.COM/")

        assert exc_info.value.existing.id == first.id
        unchanged = await registrar.get_by_id(owner, first.id)
        assert unchanged.name == "My Site"
        assert unchanged.url == "https://Example.com/path?x=1"

    async def test_same_host_for_different_owners(self, registrar, owner, other_owner):
        mine = await registrar.register(owner, "Mine", "https://example.com")
        theirs = await registrar.register(other_owner, "Theirs", "https://example.com")

        assert mine.id != theirs.id
        assert mine.canonical_host == theirs.canonical_host

    async def test_invalid_url(self, registrar, owner, site_repo):
        with pytest.raises(InvalidURL):
            await registrar.register(owner, "Broken", "https://")
        assert await site_repo.list_by_owner(owner.id) == []

    @pytest.mark.parametrize(
        "name,url",
        [("x", "https://example.com"), ("n" * 101, "https://example.com"), ("Valid", "ab")],
    )
    async def test_validation_failures(self, registrar, owner, name, url):
        with pytest.raises(InvalidRegistration) as exc_info:
            await registrar.register(owner, name, url)
        assert exc_info.value.errors

    async def test_surrounding_whitespace_is_stripped(self, registrar, owner):
        site = await registrar.register(owner, "  My Site ", " https://example.com/ ")
        assert site.name == "My Site"
        assert site.url == "https://example.com/"

    async def test_injected_validator_is_used(self, site_repo, clock, owner):
        seen = []

        def validator(name, url):
            seen.append((name, url))
            return SiteRegistration(name=name.upper(), url=url)

        registrar = SiteRegistrar(site_repo, clock=clock, validator=validator, default_timeout=1.0)
        site = await registrar.register(owner, "shop", "https://shop.example.com")

        assert seen == [("shop", "https://shop.example.com")]
        assert site.name == "SHOP"

    async def test_lost_race_reports_already_exists(self, registrar, owner, clock):
        winner = await SiteRegistrar(
            MemoryTrackedSiteRepository(), clock=clock, default_timeout=1.0
        ).register(owner, "Winner", "https://example.com")
        repo = LostRaceSiteRepository(winner)
        racing = SiteRegistrar(repo, clock=clock, default_timeout=1.0)

        with pytest.raises(AlreadyExists) as exc_info:
            await racing.register(owner, "Loser", "http://EXAMPLE.com")

        assert exc_info.value.existing.name == "Winner"
        assert [s.name for s in await repo.list_by_owner(owner.id)] == ["Winner"]

    async def test_concurrent_registrations_create_exactly_one(self, registrar, owner, site_repo):
        results = await asyncio.gather(
            *[
                registrar.register(owner, f"Attempt {i}", "https://example.com/" + str(i))
                for i in range(10)
            ],
            return_exceptions=True,
        )

        created = [r for r in results if not isinstance(r, BaseException)]
        conflicts = [r for r in results if isinstance(r, AlreadyExists)]
        assert len(created) == 1
        assert len(conflicts) == 9
        assert len(await site_repo.list_by_owner(owner.id)) == 1

    async def test_store_timeout_is_storage_failure(self, clock, owner):
        registrar = SiteRegistrar(SlowSiteRepository(), clock=clock, default_timeout=0.05)

        with pytest.raises(StorageFailure) as exc_info:
            await registrar.register(owner, "Slow", "https://example.com")
        assert exc_info.value.retryable is True

    async def test_per_call_timeout_overrides_default(self, clock, owner):
        registrar = SiteRegistrar(SlowSiteRepository(), clock=clock, default_timeout=30)

        with pytest.raises(StorageFailure):
            await registrar.list_by_owner(owner, timeout=0.05)

    async def test_storage_failure_is_not_a_conflict(self, clock, owner):
        registrar = SiteRegistrar(BrokenSiteRepository(), clock=clock, default_timeout=1.0)

        with pytest.raises(StorageFailure):
            await registrar.register(owner, "Down", "https://example.com")

    async def test_connection_errors_are_classified(self, clock, owner):
        registrar = SiteRegistrar(BrokenSiteRepository(), clock=clock, default_timeout=1.0)

        with pytest.raises(StorageFailure):
            await registrar.get_by_id(owner, "abc")


@pytest.mark.unit
class TestReads:
    """Owner-scoped read paths."""

    async def test_get_by_id(self, registrar, owner):
        site = await registrar.register(owner, "My Site", "https://example.com")
        fetched = await registrar.get_by_id(owner, site.id)
        assert fetched.id == site.id
        assert fetched.canonical_host == "example.com"

    async def test_get_other_owners_site_is_not_found(self, registrar, owner, other_owner):
        site = await registrar.register(other_owner, "Theirs", "https://example.com")

        with pytest.raises(NotFound):
            await registrar.get_by_id(owner, site.id)

    async def test_get_missing_site_is_not_found(self, registrar, owner):
        with pytest.raises(NotFound):
            await registrar.get_by_id(owner, "0" * 64)

    async def test_list_by_owner_is_scoped_and_ordered(self, registrar, owner, other_owner, clock):
        await registrar.register(owner, "First", "https://one.example.com")
        clock.advance(minutes=1)
        await registrar.register(other_owner, "Elsewhere", "https://two.example.com")
        clock.advance(minutes=1)
        await registrar.register(owner, "Second", "https://two.example.com")

        sites = await registrar.list_by_owner(owner)
        assert [s.name for s in sites] == ["First", "Second"]
        assert await registrar.list_by_owner(Principal("nobody")) == []

    async def test_returned_sites_are_copies(self, registrar, owner):
        site = await registrar.register(owner, "My Site", "https://example.com")
        fetched = await registrar.get_by_id(owner, site.id)
        fetched.name = "mutated"

        assert (await registrar.get_by_id(owner, site.id)).name == "My Site"

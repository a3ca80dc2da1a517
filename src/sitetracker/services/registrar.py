"""Tracked-site registration and owner-scoped reads."""

import asyncio
from typing import Awaitable, List, Optional, TypeVar

from ..config import get_config
from ..core.clock import Clock, system_clock
from ..core.errors import AlreadyExists, NotFound, StorageFailure
from ..db.models import TrackedSite
from ..domain.hostnames import canonicalize_host, derive_site_id
from ..domain.principal import Principal
from ..domain.validation import RegistrationValidator, validate_registration
from ..repositories.interfaces import TrackedSiteRepository
from ..utils.logging_config import get_logger, log_exception

logger = get_logger('registry')

T = TypeVar("T")


class SiteRegistrar:
    """
    Registers tracked sites for a principal.

    Holds no state between calls besides its collaborators. Duplicate
    prevention under concurrency is delegated to the store's
    ``create_if_absent``; no in-process locking happens here.
    """

    def __init__(
        self,
        sites: TrackedSiteRepository,
        clock: Clock = system_clock,
        validator: RegistrationValidator = validate_registration,
        default_timeout: Optional[float] = None,
    ):
        self._sites = sites
        self._clock = clock
        self._validate = validator
        if default_timeout is None:
            default_timeout = get_config().app.store_timeout_seconds
        self._default_timeout = default_timeout

    async def _call_store(self, operation: str, call: Awaitable[T], timeout: Optional[float]) -> T:
        timeout = self._default_timeout if timeout is None else timeout
        self._sites.set_call_timeout(timeout)
        try:
            return await asyncio.wait_for(call, timeout)
        except asyncio.TimeoutError as exc:
            failure = StorageFailure(f"{operation} timed out after {timeout}s", operation=operation)
            log_exception('registry', failure, {"operation": operation, "timeout": timeout})
            raise failure from exc
        except StorageFailure as exc:
            log_exception('registry', exc, {"operation": operation})
            raise
        except (ConnectionError, OSError) as exc:
            failure = StorageFailure(f"{operation} failed: {exc}", operation=operation)
            log_exception('registry', failure, {"operation": operation})
            raise failure from exc

    async def register(
        self,
        owner: Principal,
        name: str,
        raw_url: str,
        timeout: Optional[float] = None,
    ) -> TrackedSite:
        """
        Register ``raw_url`` as a tracked site for ``owner``.

        Raises:
            InvalidRegistration: name or url fail validation
            InvalidURL: url has no parseable host
            AlreadyExists: owner already tracks this host
            StorageFailure: the store failed or timed out
        """
        registration = self._validate(name, raw_url)
        canonical_host = canonicalize_host(registration.url)
        site_id = derive_site_id(owner.id, canonical_host)

        existing = await self._call_store(
            "find_by_owner_and_host",
            self._sites.find_by_owner_and_host(owner.id, canonical_host),
            timeout,
        )
        if existing is not None:
            logger.info(
                "Site already registered",
                extra={"owner_id": owner.id, "canonical_host": canonical_host, "site_id": existing.id},
            )
            raise AlreadyExists(
                f"{canonical_host} is already tracked", existing=existing, canonical_host=canonical_host
            )

        # One clock read for both timestamps
        now = self._clock.now()
        site = TrackedSite(
            id=site_id,
            owner_id=owner.id,
            name=registration.name,
            canonical_host=canonical_host,
            url=registration.url,
            tracked=False,
            created_at=now,
            updated_at=now,
        )

        created, existing = await self._call_store(
            "create_if_absent", self._sites.create_if_absent(site), timeout
        )
        if not created:
            logger.info(
                "Concurrent registration lost the race",
                extra={"owner_id": owner.id, "canonical_host": canonical_host, "site_id": site_id},
            )
            raise AlreadyExists(
                f"{canonical_host} is already tracked", existing=existing, canonical_host=canonical_host
            )

        logger.info(
            "Registered tracked site",
            extra={"owner_id": owner.id, "canonical_host": canonical_host, "site_id": site_id},
        )
        return site

    async def get_by_id(
        self, owner: Principal, site_id: str, timeout: Optional[float] = None
    ) -> TrackedSite:
        """
        Get one of the owner's sites.

        Raises:
            NotFound: No such site, or it belongs to someone else
            StorageFailure: the store failed or timed out
        """
        site = await self._call_store(
            "get_by_id", self._sites.get_by_id(owner.id, site_id), timeout
        )
        if site is None:
            logger.debug("Site not found", extra={"owner_id": owner.id, "site_id": site_id})
            raise NotFound("Site not found", site_id=site_id)
        return site

    async def list_by_owner(
        self, owner: Principal, timeout: Optional[float] = None
    ) -> List[TrackedSite]:
        """List the owner's sites, oldest first."""
        return await self._call_store(
            "list_by_owner", self._sites.list_by_owner(owner.id), timeout
        )

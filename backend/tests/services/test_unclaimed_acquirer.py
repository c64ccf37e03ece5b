"""Unclaimed Acquirer tests — claimUnclaimed first-claimant-wins.

Tests cover:
    - Claiming an artwork with no Ownership record / with an UNCLAIMED record
    - AlreadyClaimed for owned artworks; ArtworkNotFound for unknown ones
    - Scenario C: concurrent claimants, exactly one winner, the rest AlreadyClaimed
    - Forced interleavings on both the create and the update path
    - Lost precondition with the record still UNCLAIMED is ConcurrentUpdateConflict
    - Ambiguous decisive write; follow-up failure is TransferIncomplete
    - A later claim repairs an artwork status left UNCLAIMED behind an owner
"""

import asyncio

import pytest

from artledger.core.domain_types import (
    ArtworkId, OwnershipRecord, OwnershipStatus,
)
from artledger.core.errors import (
    AlreadyClaimedError,
    ArtworkNotFoundError,
    ConcurrentUpdateConflictError,
    InvalidArgumentError,
    TransferIncompleteError,
    UnauthorizedError,
)
from artledger.services.unclaimed_acquirer import UnclaimedAcquirer
from tests.services.store_fakes import assert_consistent

ART = ArtworkId("art-y")


async def test_claim_creates_first_ownership(service_ctx, store, seed_artwork):
    await seed_artwork("art-y", scene_path="scenes/y.glb")

    result = await UnclaimedAcquirer(service_ctx).claim_unclaimed("c1", "art-y")

    assert result.artwork_id == "art-y"
    assert result.scene_path == "scenes/y.glb"
    assert result.status == OwnershipStatus.OWNED
    await assert_consistent(store, "art-y", "c1")


async def test_claim_updates_unclaimed_ownership_record(service_ctx, store, seed_artwork):
    await seed_artwork("art-y")
    await store.create_ownership(OwnershipRecord(ART))

    await UnclaimedAcquirer(service_ctx).claim_unclaimed("c1", "art-y")

    ownership = await store.get_ownership(ART)
    assert ownership.version == 1
    await assert_consistent(store, "art-y", "c1")


async def test_owned_artwork_is_already_claimed(service_ctx, store, seed_artwork):
    await seed_artwork("art-y", owner="owner")
    with pytest.raises(AlreadyClaimedError) as exc_info:
        await UnclaimedAcquirer(service_ctx).claim_unclaimed("c1", "art-y")
    assert exc_info.value.http_status == 409
    await assert_consistent(store, "art-y", "owner")


async def test_second_claim_is_already_claimed(service_ctx, seed_artwork):
    await seed_artwork("art-y")
    acquirer = UnclaimedAcquirer(service_ctx)
    await acquirer.claim_unclaimed("c1", "art-y")
    with pytest.raises(AlreadyClaimedError):
        await acquirer.claim_unclaimed("c1", "art-y")


async def test_unknown_artwork(service_ctx):
    with pytest.raises(ArtworkNotFoundError):
        await UnclaimedAcquirer(service_ctx).claim_unclaimed("c1", "nope")


async def test_identity_and_argument_checked_first(scripted_ctx, scripted_store):
    acquirer = UnclaimedAcquirer(scripted_ctx)
    with pytest.raises(UnauthorizedError):
        await acquirer.claim_unclaimed(None, "art-y")
    with pytest.raises(InvalidArgumentError):
        await acquirer.claim_unclaimed("c1", "")
    assert sum(scripted_store.calls.values()) == 0


# -- Races --------------------------------------------------------------------

async def test_scenario_c_concurrent_claims(service_ctx, store, seed_artwork):
    await seed_artwork("art-y")
    acquirer = UnclaimedAcquirer(service_ctx)

    first, second = await asyncio.gather(
        acquirer.claim_unclaimed("c1", "art-y"),
        acquirer.claim_unclaimed("c2", "art-y"),
        return_exceptions=True,
    )

    outcomes = {"c1": first, "c2": second}
    winners = [sub for sub, r in outcomes.items() if not isinstance(r, Exception)]
    assert len(winners) == 1
    loser = next(r for r in outcomes.values() if isinstance(r, Exception))
    assert isinstance(loser, AlreadyClaimedError)
    await assert_consistent(store, "art-y", winners[0])


async def test_many_concurrent_claims_on_unclaimed_record(service_ctx, store, seed_artwork):
    await seed_artwork("art-y")
    await store.create_ownership(OwnershipRecord(ART))
    acquirer = UnclaimedAcquirer(service_ctx)
    claimants = [f"c{i}" for i in range(6)]

    results = await asyncio.gather(
        *(acquirer.claim_unclaimed(sub, "art-y") for sub in claimants),
        return_exceptions=True,
    )

    winners = [sub for sub, r in zip(claimants, results) if not isinstance(r, Exception)]
    assert len(winners) == 1
    assert all(
        isinstance(r, AlreadyClaimedError) for r in results if isinstance(r, Exception)
    )
    await assert_consistent(store, "art-y", winners[0])


async def test_loser_of_create_race_is_already_claimed(
    service_ctx, scripted_ctx, scripted_store, store, seed_artwork,
):
    """Both read 'no ownership record'; the winner creates it first."""
    await seed_artwork("art-y")
    scripted_store.snapshots["get_ownership"].append(None)

    await UnclaimedAcquirer(service_ctx).claim_unclaimed("c1", "art-y")
    with pytest.raises(AlreadyClaimedError):
        await UnclaimedAcquirer(scripted_ctx).claim_unclaimed("c2", "art-y")
    await assert_consistent(store, "art-y", "c1")


async def test_loser_of_update_race_is_already_claimed(
    service_ctx, scripted_ctx, scripted_store, store, seed_artwork,
):
    """Both read the UNCLAIMED record at the same version."""
    await seed_artwork("art-y")
    await store.create_ownership(OwnershipRecord(ART))
    scripted_store.snapshots["get_ownership"].append(await store.get_ownership(ART))

    await UnclaimedAcquirer(service_ctx).claim_unclaimed("c1", "art-y")
    with pytest.raises(AlreadyClaimedError):
        await UnclaimedAcquirer(scripted_ctx).claim_unclaimed("c2", "art-y")
    await assert_consistent(store, "art-y", "c1")


async def test_stale_version_without_new_owner_is_conflict(
    scripted_ctx, scripted_store, store, seed_artwork,
):
    """The record changed but is still UNCLAIMED: nobody won, so no AlreadyClaimed."""
    await seed_artwork("art-y")
    await store.create_ownership(OwnershipRecord(ART))
    scripted_store.snapshots["get_ownership"].append(await store.get_ownership(ART))
    await store.update_ownership(ART, {"status": OwnershipStatus.UNCLAIMED})

    with pytest.raises(ConcurrentUpdateConflictError) as exc_info:
        await UnclaimedAcquirer(scripted_ctx).claim_unclaimed("c1", "art-y")

    assert exc_info.value.code == "CONCURRENT_UPDATE_CONFLICT"
    await assert_consistent(store, "art-y", None)


# -- Transient failures -------------------------------------------------------

async def test_claim_that_landed_despite_error_succeeds(
    scripted_ctx, scripted_store, store, seed_artwork,
):
    await seed_artwork("art-y")
    scripted_store.fail_after["create_ownership"] = 1

    result = await UnclaimedAcquirer(scripted_ctx).claim_unclaimed("c1", "art-y")

    assert result.status == OwnershipStatus.OWNED
    assert scripted_store.calls["create_ownership"] == 1
    await assert_consistent(store, "art-y", "c1")


async def test_artwork_write_failure_is_transfer_incomplete(
    scripted_ctx, scripted_store, store, seed_artwork,
):
    await seed_artwork("art-y")
    scripted_store.fail_always.add("update_artwork")

    with pytest.raises(TransferIncompleteError) as exc_info:
        await UnclaimedAcquirer(scripted_ctx).claim_unclaimed("c1", "art-y")
    assert (await store.get_ownership(ART)).owner_sub == "c1"
    assert exc_info.value.context.retry_after_ms == scripted_ctx.retry_policy.max_delay_ms


async def test_later_claim_repairs_unclaimed_artwork_status(
    scripted_ctx, scripted_store, store, seed_artwork,
):
    """The winner's status write never landed; the next claimant finishes it."""
    await seed_artwork("art-y")
    scripted_store.fail_always.add("update_artwork")
    with pytest.raises(TransferIncompleteError):
        await UnclaimedAcquirer(scripted_ctx).claim_unclaimed("c1", "art-y")
    assert (await store.get_artwork(ART)).status == OwnershipStatus.UNCLAIMED

    scripted_store.fail_always.clear()
    with pytest.raises(AlreadyClaimedError):
        await UnclaimedAcquirer(scripted_ctx).claim_unclaimed("c2", "art-y")

    await assert_consistent(store, "art-y", "c1")


async def test_failed_status_repair_still_reports_already_claimed(
    scripted_ctx, scripted_store, store, seed_artwork,
):
    await seed_artwork("art-y")
    scripted_store.fail_always.add("update_artwork")
    with pytest.raises(TransferIncompleteError):
        await UnclaimedAcquirer(scripted_ctx).claim_unclaimed("c1", "art-y")

    with pytest.raises(AlreadyClaimedError):
        await UnclaimedAcquirer(scripted_ctx).claim_unclaimed("c2", "art-y")
    assert (await store.get_ownership(ART)).owner_sub == "c1"

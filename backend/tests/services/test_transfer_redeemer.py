"""Transfer Redeemer tests — claimTransfer exactly-once semantics.

Tests cover:
    - Scenario A: redeem within the window, then replay reports CodeAlreadyUsed
    - Scenario B: 11 minutes later the code is expired
    - Expiry boundary: exactly at expires_at fails, one second before succeeds
    - InvalidCode, ArtworkNotFound, Unauthorized, InvalidArgument (no writes)
    - CodeStale after an unrelated transfer, including a round trip back to the issuer
    - Concurrent redemptions of one code: exactly one winner, the rest CodeAlreadyUsed
    - Forced interleavings: loser passed validation on an old snapshot
    - Ownership moved after validation: consumed code, CodeStale, winner untouched
    - Ambiguous decisive write (landed / not landed)
    - Follow-up write failures surface as TransferIncomplete
"""

import asyncio
from datetime import timedelta

import pytest

from artledger.core.domain_types import ArtworkId, OwnershipStatus, TransferCodeValue
from artledger.core.errors import (
    ArtworkNotFoundError,
    CodeAlreadyUsedError,
    CodeExpiredError,
    CodeStaleError,
    InvalidArgumentError,
    InvalidCodeError,
    TransferIncompleteError,
    UnauthorizedError,
)
from artledger.services.transfer_issuer import TransferIssuer
from artledger.services.transfer_redeemer import TransferRedeemer
from tests.services.store_fakes import assert_consistent

ART = ArtworkId("art-1")


@pytest.fixture
async def owned_artwork(seed_artwork):
    return await seed_artwork("art-1", scene_path="scenes/sunflowers.glb", owner="owner")


async def _issue(ctx, owner: str = "owner", ttl: int = 10) -> TransferCodeValue:
    created = await TransferIssuer(ctx).create_transfer(owner, "art-1", ttl)
    return created.code


# -- Happy path / scenarios ---------------------------------------------------

async def test_scenario_a_redeem_then_replay(service_ctx, store, owned_artwork, clock):
    code = await _issue(service_ctx)
    clock.advance(minutes=3)
    redeemer = TransferRedeemer(service_ctx)

    result = await redeemer.claim_transfer("claimant", code)

    assert result.artwork_id == "art-1"
    assert result.scene_path == "scenes/sunflowers.glb"
    assert result.status == OwnershipStatus.OWNED
    await assert_consistent(store, "art-1", "claimant")

    record = await store.get_transfer_code(code)
    assert record.used_at == clock.now
    assert record.used_by_sub == "claimant"

    with pytest.raises(CodeAlreadyUsedError):
        await redeemer.claim_transfer("claimant", code)
    with pytest.raises(CodeAlreadyUsedError):
        await redeemer.claim_transfer("someone-else", code)


async def test_scenario_b_expired_after_eleven_minutes(
    service_ctx, store, owned_artwork, clock,
):
    code = await _issue(service_ctx, ttl=10)
    clock.advance(minutes=11)
    with pytest.raises(CodeExpiredError):
        await TransferRedeemer(service_ctx).claim_transfer("claimant", code)
    assert not (await store.get_transfer_code(code)).is_used
    await assert_consistent(store, "art-1", "owner")


async def test_expired_exactly_at_expiry(service_ctx, owned_artwork, clock):
    code = await _issue(service_ctx, ttl=10)
    clock.advance(minutes=10)
    with pytest.raises(CodeExpiredError):
        await TransferRedeemer(service_ctx).claim_transfer("claimant", code)


async def test_redeemable_one_second_before_expiry(service_ctx, store, owned_artwork, clock):
    code = await _issue(service_ctx, ttl=10)
    clock.advance(minutes=9, seconds=59)
    await TransferRedeemer(service_ctx).claim_transfer("claimant", code)
    await assert_consistent(store, "art-1", "claimant")


async def test_new_owner_can_transfer_again(service_ctx, store, owned_artwork):
    first = await _issue(service_ctx)
    await TransferRedeemer(service_ctx).claim_transfer("second", first)
    onward = await _issue(service_ctx, owner="second")
    await TransferRedeemer(service_ctx).claim_transfer("third", onward)
    await assert_consistent(store, "art-1", "third")


# -- Validation failures (no writes) ------------------------------------------

async def test_unknown_code_is_invalid(service_ctx, owned_artwork):
    with pytest.raises(InvalidCodeError) as exc_info:
        await TransferRedeemer(service_ctx).claim_transfer("claimant", "deadbeef" * 3)
    assert exc_info.value.http_status == 404


async def test_anonymous_claim_rejected_before_store_access(scripted_ctx, scripted_store):
    with pytest.raises(UnauthorizedError):
        await TransferRedeemer(scripted_ctx).claim_transfer("", "abc")
    assert sum(scripted_store.calls.values()) == 0


async def test_blank_code_rejected(scripted_ctx, scripted_store):
    with pytest.raises(InvalidArgumentError) as exc_info:
        await TransferRedeemer(scripted_ctx).claim_transfer("claimant", None)
    assert exc_info.value.field == "code"
    assert sum(scripted_store.calls.values()) == 0


async def test_missing_artwork_leaves_code_unused(service_ctx, store, clock):
    from artledger.core.domain_types import Subject, TransferCodeRecord

    code = TransferCodeValue("orphan" + "0" * 18)
    await store.create_transfer_code(TransferCodeRecord(
        code=code, artwork_id=ArtworkId("ghost"), created_by_sub=Subject("owner"),
        expires_at=clock.now + timedelta(minutes=10),
    ))
    with pytest.raises(ArtworkNotFoundError):
        await TransferRedeemer(service_ctx).claim_transfer("claimant", code)
    assert not (await store.get_transfer_code(code)).is_used


# -- Stale codes --------------------------------------------------------------

async def test_code_stale_after_unrelated_transfer(service_ctx, store, owned_artwork):
    for_alice = await _issue(service_ctx)
    for_bob = await _issue(service_ctx)
    redeemer = TransferRedeemer(service_ctx)

    await redeemer.claim_transfer("bob", for_bob)
    with pytest.raises(CodeStaleError):
        await redeemer.claim_transfer("alice", for_alice)

    assert not (await store.get_transfer_code(for_alice)).is_used
    await assert_consistent(store, "art-1", "bob")


async def test_code_stays_stale_after_round_trip(service_ctx, store, owned_artwork):
    """owner -> bob -> owner: the code owner issued before the round trip stays void."""
    old = await _issue(service_ctx)
    to_bob = await _issue(service_ctx)
    redeemer = TransferRedeemer(service_ctx)

    await redeemer.claim_transfer("bob", to_bob)
    back = await _issue(service_ctx, owner="bob")
    await redeemer.claim_transfer("owner", back)

    with pytest.raises(CodeStaleError):
        await redeemer.claim_transfer("alice", old)
    await assert_consistent(store, "art-1", "owner")


# -- Races --------------------------------------------------------------------

async def test_concurrent_redemptions_have_one_winner(service_ctx, store, owned_artwork):
    code = await _issue(service_ctx)
    redeemer = TransferRedeemer(service_ctx)
    claimants = [f"claimant-{i}" for i in range(6)]

    results = await asyncio.gather(
        *(redeemer.claim_transfer(sub, code) for sub in claimants),
        return_exceptions=True,
    )

    winners = [sub for sub, r in zip(claimants, results) if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert all(isinstance(e, CodeAlreadyUsedError) for e in losers)
    await assert_consistent(store, "art-1", winners[0])
    assert (await store.get_transfer_code(code)).used_by_sub == winners[0]


async def test_loser_validated_on_old_snapshot_gets_code_already_used(
    service_ctx, scripted_ctx, scripted_store, store, owned_artwork,
):
    """Both requests read the code unused; the winner consumes it first."""
    code = await _issue(service_ctx)
    scripted_store.snapshots["get_transfer_code"].append(await store.get_transfer_code(code))
    scripted_store.snapshots["get_ownership"].append(await store.get_ownership(ART))

    await TransferRedeemer(service_ctx).claim_transfer("winner", code)
    with pytest.raises(CodeAlreadyUsedError):
        await TransferRedeemer(scripted_ctx).claim_transfer("loser", code)

    await assert_consistent(store, "art-1", "winner")
    assert (await store.get_transfer_code(code)).used_by_sub == "winner"


async def test_loser_seeing_moved_ownership_gets_code_already_used(
    service_ctx, scripted_ctx, scripted_store, store, owned_artwork,
):
    """Code read before the winner consumed it, ownership read after it moved."""
    code = await _issue(service_ctx)
    scripted_store.snapshots["get_transfer_code"].append(await store.get_transfer_code(code))

    await TransferRedeemer(service_ctx).claim_transfer("winner", code)
    with pytest.raises(CodeAlreadyUsedError):
        await TransferRedeemer(scripted_ctx).claim_transfer("loser", code)
    await assert_consistent(store, "art-1", "winner")


async def test_ownership_moved_after_validation_is_stale(
    service_ctx, scripted_ctx, scripted_store, store, owned_artwork,
):
    """The code is won, but ownership moved through another code in between."""
    mine = await _issue(service_ctx)
    other = await _issue(service_ctx)
    scripted_store.snapshots["get_ownership"].append(await store.get_ownership(ART))

    await TransferRedeemer(service_ctx).claim_transfer("bob", other)
    with pytest.raises(CodeStaleError):
        await TransferRedeemer(scripted_ctx).claim_transfer("alice", mine)

    assert (await store.get_transfer_code(mine)).used_by_sub == "alice"
    await assert_consistent(store, "art-1", "bob")


# -- Transient failures -------------------------------------------------------

async def test_consumption_that_landed_despite_error_succeeds(
    scripted_ctx, scripted_store, service_ctx, store, owned_artwork,
):
    code = await _issue(service_ctx)
    scripted_store.fail_after["update_transfer_code"] = 1

    result = await TransferRedeemer(scripted_ctx).claim_transfer("claimant", code)

    assert result.status == OwnershipStatus.OWNED
    assert scripted_store.calls["update_transfer_code"] == 1
    await assert_consistent(store, "art-1", "claimant")


async def test_consumption_that_did_not_land_is_retried(
    scripted_ctx, scripted_store, service_ctx, store, owned_artwork,
):
    code = await _issue(service_ctx)
    scripted_store.fail_before["update_transfer_code"] = 1

    await TransferRedeemer(scripted_ctx).claim_transfer("claimant", code)

    assert scripted_store.calls["update_transfer_code"] == 2
    await assert_consistent(store, "art-1", "claimant")


async def test_transient_read_failures_are_retried(
    scripted_ctx, scripted_store, service_ctx, store, owned_artwork,
):
    code = await _issue(service_ctx)
    scripted_store.fail_before["get_transfer_code"] = 1
    scripted_store.fail_before["get_ownership"] = 2

    await TransferRedeemer(scripted_ctx).claim_transfer("claimant", code)
    await assert_consistent(store, "art-1", "claimant")


async def test_ownership_write_failure_is_transfer_incomplete(
    scripted_ctx, scripted_store, service_ctx, store, owned_artwork,
):
    code = await _issue(service_ctx)
    scripted_store.fail_always.add("update_ownership")

    with pytest.raises(TransferIncompleteError) as exc_info:
        await TransferRedeemer(scripted_ctx).claim_transfer("claimant", code)

    assert exc_info.value.http_status == 503
    assert exc_info.value.context.artwork_id == "art-1"
    assert (await store.get_transfer_code(code)).used_by_sub == "claimant"


async def test_artwork_write_failure_is_transfer_incomplete(
    scripted_ctx, scripted_store, service_ctx, store, owned_artwork,
):
    code = await _issue(service_ctx)
    scripted_store.fail_always.add("update_artwork")

    with pytest.raises(TransferIncompleteError):
        await TransferRedeemer(scripted_ctx).claim_transfer("claimant", code)

    ownership = await store.get_ownership(ART)
    assert ownership.owner_sub == "claimant"
    assert (await store.get_transfer_code(code)).is_used

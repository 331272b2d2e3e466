"""
Custody Engine — Product Ledger Tests
=======================================
Creation, two-phase transfer, receipt, notes, history ordering,
and all-or-nothing failure behavior.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from core.primitives.identity import Identity
from core.time.clock import FixedClock
from engines.custody.access import AccessControlList
from engines.custody.config import CustodyConfig
from engines.custody.errors import (
    AlreadyExistsError,
    CustodyError,
    InvalidRecipientError,
    NoPendingTransferForCallerError,
    NotFoundError,
    NotOwnerError,
    PendingTransferExistsError,
    RoleMismatchError,
)
from engines.custody.events import (
    PRODUCT_CREATED,
    PRODUCT_RECEIVED,
    TRANSFER_ACCEPTED,
    TRANSFER_INITIATED,
    CustodyNotifier,
    build_custody_subscriber_registry,
)
from engines.custody.ledger import ProductLedger
from engines.custody.models import EventAction, Role, Status
from engines.custody.registry import RoleRegistry
from engines.custody.state import InMemoryCustodyState


NOW = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)

ADMIN = Identity(0x01)
M = Identity(0xA1)
D = Identity(0xD1)
R = Identity(0xE1)
STRANGER = Identity(0xBB)

PID = "P-1"


def _build(allow_pending_overwrite: bool = True) -> SimpleNamespace:
    state = InMemoryCustodyState(admin=ADMIN)
    clock = FixedClock(NOW, step_seconds=1)
    heard = []
    registry = build_custody_subscriber_registry()
    registry.subscribe_all(heard.append)
    notifier = CustodyNotifier(subscriber_registry=registry, clock=clock)
    roles = RoleRegistry(state)
    roles.assign_role(ADMIN, M, Role.MANUFACTURER)
    roles.assign_role(ADMIN, D, Role.DISTRIBUTOR)
    roles.assign_role(ADMIN, R, Role.RETAILER)
    ledger = ProductLedger(
        state,
        config=CustodyConfig(
            admin=ADMIN, allow_pending_overwrite=allow_pending_overwrite,
        ),
        clock=clock,
        notifier=notifier,
    )
    return SimpleNamespace(
        state=state,
        roles=roles,
        access=AccessControlList(state, notifier=notifier),
        ledger=ledger,
        notifier=notifier,
        heard=heard,
    )


def _tags(env) -> list:
    return [n.tag for n in env.heard]


def _actions(product) -> list:
    return [e.action for e in product.history]


# ══════════════════════════════════════════════════════════════
# CREATE
# ══════════════════════════════════════════════════════════════

class TestCreateProduct:
    def test_manufacturer_creates(self):
        env = _build()
        product = env.ledger.create_product(M, PID, "batch-7")

        assert product.summary().as_tuple() == (
            PID, M, Role.MANUFACTURER, Status.CREATED,
        )
        assert product.history_length == 1
        entry = product.history[0]
        assert entry.action is EventAction.CREATED
        assert entry.actor == M
        assert entry.metadata == "batch-7"
        assert entry.timestamp == NOW

    def test_creator_gets_view_grant(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        assert env.access.can_view(PID, M)

    def test_emits_product_created(self):
        env = _build()
        env.ledger.create_product(M, PID, "batch-7")

        assert _tags(env) == [PRODUCT_CREATED]
        notification = env.heard[0]
        assert notification.event_type == "custody.product.created.v1"
        assert notification.payload == {
            "product_id": PID,
            "owner": M.to_hex(),
            "metadata": "batch-7",
        }

    @pytest.mark.parametrize("caller", [D, R, ADMIN, STRANGER])
    def test_non_manufacturer_rejected(self, caller):
        env = _build()
        with pytest.raises(RoleMismatchError) as exc_info:
            env.ledger.create_product(caller, PID, "")

        assert exc_info.value.code == "ROLE_MISMATCH"
        assert exc_info.value.product_id == PID
        assert not env.ledger.product_exists(PID)
        assert not env.access.can_view(PID, caller)
        assert len(env.heard) == 0

    def test_revoked_manufacturer_rejected(self):
        env = _build()
        env.roles.revoke_role(ADMIN, M)
        with pytest.raises(RoleMismatchError):
            env.ledger.create_product(M, PID, "")

    def test_duplicate_id_rejected(self):
        env = _build()
        first = env.ledger.create_product(M, PID, "first")
        env.roles.assign_role(ADMIN, STRANGER, Role.MANUFACTURER)

        with pytest.raises(AlreadyExistsError):
            env.ledger.create_product(STRANGER, PID, "second")

        assert env.ledger.get_product(PID) == first
        assert not env.access.can_view(PID, STRANGER)
        assert len(env.heard) == 1

    def test_role_checked_before_existence(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        with pytest.raises(RoleMismatchError):
            env.ledger.create_product(D, PID, "")

    def test_empty_product_id_rejected(self):
        env = _build()
        with pytest.raises(ValueError):
            env.ledger.create_product(M, "", "")

    def test_metadata_passed_through_unmodified(self):
        env = _build()
        raw = '  {"lot": 7, "temp": "-18C"}\n'
        product = env.ledger.create_product(M, PID, raw)
        assert product.history[0].metadata == raw


# ══════════════════════════════════════════════════════════════
# INITIATE TRANSFER
# ══════════════════════════════════════════════════════════════

class TestInitiateTransfer:
    def test_owner_initiates(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        product = env.ledger.initiate_transfer(M, PID, D)

        assert product.status is Status.IN_TRANSIT
        assert product.owner == M
        assert env.ledger.pending_recipient(PID) == D
        last = product.history[-1]
        assert last.action is EventAction.TRANSFER_INITIATED
        assert last.actor == M
        assert last.metadata == D.to_hex()

    def test_emits_transfer_initiated(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        env.ledger.initiate_transfer(M, PID, D)

        notification = env.heard[-1]
        assert notification.tag == TRANSFER_INITIATED
        assert notification.payload == {
            "product_id": PID,
            "from": M.to_hex(),
            "to": D.to_hex(),
        }

    def test_missing_product(self):
        env = _build()
        with pytest.raises(NotFoundError):
            env.ledger.initiate_transfer(M, "nope", D)

    def test_non_owner_rejected(self):
        env = _build()
        env.ledger.create_product(M, PID, "")

        with pytest.raises(NotOwnerError):
            env.ledger.initiate_transfer(D, PID, R)

        assert env.ledger.pending_recipient(PID).is_null
        assert env.ledger.get_product(PID).history_length == 1
        assert env.ledger.get_product(PID).status is Status.CREATED

    def test_admin_is_not_owner(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        with pytest.raises(NotOwnerError):
            env.ledger.initiate_transfer(ADMIN, PID, D)

    def test_null_recipient_rejected(self):
        env = _build()
        env.ledger.create_product(M, PID, "")

        with pytest.raises(InvalidRecipientError):
            env.ledger.initiate_transfer(M, PID, Identity.NULL)

        product = env.ledger.get_product(PID)
        assert product.status is Status.CREATED
        assert product.history_length == 1
        assert len(env.heard) == 1

    def test_owner_checked_before_recipient(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        with pytest.raises(NotOwnerError):
            env.ledger.initiate_transfer(D, PID, Identity.NULL)

    def test_recipient_role_not_checked(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        env.ledger.initiate_transfer(M, PID, STRANGER)
        assert env.ledger.pending_recipient(PID) == STRANGER

    def test_overwrite_replaces_nominee(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        env.ledger.initiate_transfer(M, PID, D)
        product = env.ledger.initiate_transfer(M, PID, R)

        assert env.ledger.pending_recipient(PID) == R
        assert _actions(product) == [
            EventAction.CREATED,
            EventAction.TRANSFER_INITIATED,
            EventAction.TRANSFER_INITIATED,
        ]
        with pytest.raises(NoPendingTransferForCallerError):
            env.ledger.accept_transfer(D, PID)

    def test_overwrite_disabled(self):
        env = _build(allow_pending_overwrite=False)
        env.ledger.create_product(M, PID, "")
        env.ledger.initiate_transfer(M, PID, D)

        with pytest.raises(PendingTransferExistsError):
            env.ledger.initiate_transfer(M, PID, R)

        assert env.ledger.pending_recipient(PID) == D
        assert env.ledger.get_product(PID).history_length == 2

    def test_overwrite_disabled_allows_after_accept(self):
        env = _build(allow_pending_overwrite=False)
        env.ledger.create_product(M, PID, "")
        env.ledger.initiate_transfer(M, PID, D)
        env.ledger.accept_transfer(D, PID)

        env.ledger.initiate_transfer(D, PID, R)
        assert env.ledger.pending_recipient(PID) == R

    def test_initiate_after_received(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        env.ledger.mark_received(M, PID)

        product = env.ledger.initiate_transfer(M, PID, D)
        assert product.status is Status.IN_TRANSIT


# ══════════════════════════════════════════════════════════════
# ACCEPT TRANSFER
# ══════════════════════════════════════════════════════════════

class TestAcceptTransfer:
    def test_recipient_accepts(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        env.ledger.initiate_transfer(M, PID, D)
        product = env.ledger.accept_transfer(D, PID)

        assert product.owner == D
        assert product.owner_role is Role.DISTRIBUTOR
        assert product.status is Status.IN_TRANSIT
        assert env.ledger.pending_recipient(PID).is_null
        last = product.history[-1]
        assert last.action is EventAction.TRANSFER_ACCEPTED
        assert last.actor == D
        assert last.metadata == ""

    def test_emits_transfer_accepted(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        env.ledger.initiate_transfer(M, PID, D)
        env.ledger.accept_transfer(D, PID)

        notification = env.heard[-1]
        assert notification.tag == TRANSFER_ACCEPTED
        assert notification.payload == {
            "product_id": PID,
            "from": M.to_hex(),
            "to": D.to_hex(),
        }

    def test_owner_role_snapshot_of_recipient(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        env.ledger.initiate_transfer(M, PID, STRANGER)
        product = env.ledger.accept_transfer(STRANGER, PID)

        assert product.owner == STRANGER
        assert product.owner_role is Role.NONE

    def test_owner_role_not_refreshed_on_role_change(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        env.ledger.initiate_transfer(M, PID, D)
        env.ledger.accept_transfer(D, PID)

        env.roles.assign_role(ADMIN, D, Role.RETAILER)
        assert env.ledger.get_product(PID).owner_role is Role.DISTRIBUTOR

    def test_wrong_caller_rejected(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        env.ledger.initiate_transfer(M, PID, D)

        with pytest.raises(NoPendingTransferForCallerError):
            env.ledger.accept_transfer(R, PID)

        product = env.ledger.get_product(PID)
        assert product.owner == M
        assert product.history_length == 2
        assert env.ledger.pending_recipient(PID) == D

    def test_nothing_pending(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        with pytest.raises(NoPendingTransferForCallerError):
            env.ledger.accept_transfer(D, PID)

    def test_owner_cannot_accept_own_nomination(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        env.ledger.initiate_transfer(M, PID, D)
        with pytest.raises(NoPendingTransferForCallerError):
            env.ledger.accept_transfer(M, PID)

    def test_null_caller_never_matches(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        with pytest.raises(NoPendingTransferForCallerError):
            env.ledger.accept_transfer(Identity.NULL, PID)

    def test_missing_product(self):
        env = _build()
        with pytest.raises(NotFoundError):
            env.ledger.accept_transfer(D, "nope")

    def test_second_accept_rejected(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        env.ledger.initiate_transfer(M, PID, D)
        env.ledger.accept_transfer(D, PID)

        with pytest.raises(NoPendingTransferForCallerError):
            env.ledger.accept_transfer(D, PID)

    def test_previous_owner_loses_control(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        env.ledger.initiate_transfer(M, PID, D)
        env.ledger.accept_transfer(D, PID)

        with pytest.raises(NotOwnerError):
            env.ledger.initiate_transfer(M, PID, R)
        with pytest.raises(NotOwnerError):
            env.ledger.mark_received(M, PID)


# ══════════════════════════════════════════════════════════════
# RECEIVE AND NOTES
# ══════════════════════════════════════════════════════════════

class TestMarkReceived:
    def test_owner_marks_received(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        product = env.ledger.mark_received(M, PID)

        assert product.status is Status.RECEIVED
        assert product.history[-1].action is EventAction.RECEIVED
        assert product.history[-1].metadata == ""
        notification = env.heard[-1]
        assert notification.tag == PRODUCT_RECEIVED
        assert notification.payload == {"product_id": PID, "owner": M.to_hex()}

    def test_non_owner_rejected(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        with pytest.raises(NotOwnerError):
            env.ledger.mark_received(D, PID)
        assert env.ledger.get_product(PID).status is Status.CREATED

    def test_missing_product(self):
        env = _build()
        with pytest.raises(NotFoundError):
            env.ledger.mark_received(M, "nope")

    def test_repeat_receive_appends(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        env.ledger.mark_received(M, PID)
        product = env.ledger.mark_received(M, PID)
        assert _actions(product).count(EventAction.RECEIVED) == 2

    def test_pending_survives_receive(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        env.ledger.initiate_transfer(M, PID, D)
        env.ledger.mark_received(M, PID)

        assert env.ledger.pending_recipient(PID) == D
        product = env.ledger.accept_transfer(D, PID)
        assert product.status is Status.RECEIVED


class TestAddNote:
    def test_owner_adds_note(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        product = env.ledger.add_note(M, PID, "seal intact")

        last = product.history[-1]
        assert last.action is EventAction.NOTE
        assert last.metadata == "seal intact"
        assert product.status is Status.CREATED

    def test_note_emits_nothing(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        env.ledger.add_note(M, PID, "seal intact")
        assert _tags(env) == [PRODUCT_CREATED]

    def test_note_keeps_status(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        env.ledger.initiate_transfer(M, PID, D)
        product = env.ledger.add_note(M, PID, "loaded")
        assert product.status is Status.IN_TRANSIT

    def test_non_owner_rejected(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        with pytest.raises(NotOwnerError):
            env.ledger.add_note(D, PID, "x")
        assert env.ledger.get_product(PID).history_length == 1

    def test_missing_product(self):
        env = _build()
        with pytest.raises(NotFoundError):
            env.ledger.add_note(M, "nope", "x")


# ══════════════════════════════════════════════════════════════
# HISTORY AND END-TO-END
# ══════════════════════════════════════════════════════════════

class TestHistory:
    def test_full_chain_of_custody(self):
        env = _build()
        env.ledger.create_product(M, PID, "m")
        env.ledger.initiate_transfer(M, PID, D)
        env.ledger.accept_transfer(D, PID)
        env.ledger.initiate_transfer(D, PID, R)
        env.ledger.accept_transfer(R, PID)
        env.ledger.mark_received(R, PID)

        summary = env.access.get_product_summary(PID)
        assert summary.as_tuple() == (PID, R, Role.RETAILER, Status.RECEIVED)

        history = env.access.get_product_history(M, PID)
        assert [e.action for e in history] == [
            EventAction.CREATED,
            EventAction.TRANSFER_INITIATED,
            EventAction.TRANSFER_ACCEPTED,
            EventAction.TRANSFER_INITIATED,
            EventAction.TRANSFER_ACCEPTED,
            EventAction.RECEIVED,
        ]
        assert [e.actor for e in history] == [M, M, D, D, R, R]
        assert history[1].metadata == D.to_hex()
        assert history[3].metadata == R.to_hex()

        assert _tags(env) == [
            PRODUCT_CREATED,
            TRANSFER_INITIATED,
            TRANSFER_ACCEPTED,
            TRANSFER_INITIATED,
            TRANSFER_ACCEPTED,
            PRODUCT_RECEIVED,
        ]

    def test_timestamps_non_decreasing(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        env.ledger.add_note(M, PID, "a")
        env.ledger.initiate_transfer(M, PID, D)
        product = env.ledger.accept_transfer(D, PID)

        stamps = [e.timestamp for e in product.history]
        assert stamps == sorted(stamps)
        assert stamps[0] == NOW

    def test_frozen_clock_still_orders_by_append(self):
        state = InMemoryCustodyState(admin=ADMIN)
        RoleRegistry(state).assign_role(ADMIN, M, Role.MANUFACTURER)
        ledger = ProductLedger(state, clock=FixedClock(NOW))

        ledger.create_product(M, PID, "")
        ledger.add_note(M, PID, "first")
        product = ledger.add_note(M, PID, "second")

        assert [e.metadata for e in product.history] == ["", "first", "second"]
        assert {e.timestamp for e in product.history} == {NOW}

    def test_earlier_snapshot_unchanged(self):
        env = _build()
        created = env.ledger.create_product(M, PID, "")
        env.ledger.initiate_transfer(M, PID, D)

        assert created.history_length == 1
        assert created.status is Status.CREATED
        assert env.ledger.get_product(PID).history[0] == created.history[0]

    def test_history_is_a_tuple(self):
        env = _build()
        product = env.ledger.create_product(M, PID, "")
        assert isinstance(product.history, tuple)
        with pytest.raises(AttributeError):
            product.history.append(product.history[0])

    def test_failures_add_no_entries(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        for attempt in (
            lambda: env.ledger.initiate_transfer(D, PID, R),
            lambda: env.ledger.initiate_transfer(M, PID, Identity.NULL),
            lambda: env.ledger.accept_transfer(D, PID),
            lambda: env.ledger.mark_received(R, PID),
            lambda: env.ledger.add_note(STRANGER, PID, "x"),
        ):
            with pytest.raises(CustodyError):
                attempt()

        assert env.ledger.get_product(PID).history_length == 1
        assert len(env.heard) == 1

    def test_products_are_independent(self):
        env = _build()
        env.ledger.create_product(M, "P-1", "")
        env.ledger.create_product(M, "P-2", "")
        env.ledger.initiate_transfer(M, "P-1", D)

        assert env.ledger.get_product("P-2").status is Status.CREATED
        assert env.ledger.pending_recipient("P-2").is_null
        assert env.state.product_ids() == ("P-1", "P-2")

    def test_get_product_missing(self):
        env = _build()
        with pytest.raises(NotFoundError):
            env.ledger.get_product("nope")

    def test_step_clock_spacing(self):
        env = _build()
        env.ledger.create_product(M, PID, "")
        product = env.ledger.add_note(M, PID, "x")
        # the notifier shares the clock, so each call consumes two ticks
        assert product.history[1].timestamp - product.history[0].timestamp == (
            timedelta(seconds=2)
        )

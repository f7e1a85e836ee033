from __future__ import annotations

from sqlalchemy.orm import Session

from dividend_manager.services.dividends import DividendLedger
from dividend_manager.services.exclusions import ExclusionSetManager, materialize

from tests.doubles import HOLDER_A, HOLDER_B, HOLDER_C


class ListSource:
    def __init__(self, rows: list[str]) -> None:
        self._rows = rows

    def read_addresses(self) -> list[str]:
        return list(self._rows)


def test_materialize_drops_malformed_entries_and_deduplicates() -> None:
    exclusions = materialize(["not-an-address", HOLDER_B, HOLDER_A.lower(), HOLDER_A, "", 42, HOLDER_B])

    assert exclusions.addresses == (HOLDER_B, HOLDER_A)
    assert exclusions.rejected == 3
    assert HOLDER_A in exclusions
    assert len(exclusions) == 2


def test_set_default_persists_and_submits(db_session: Session, ledger, context) -> None:
    manager = ExclusionSetManager(db_session, ledger)

    result = manager.set_default(context, [HOLDER_A, "0x1234", HOLDER_B])

    assert result.addresses == (HOLDER_A, HOLDER_B)
    assert result.rejected == 1
    assert manager.get_default(context).addresses == (HOLDER_A, HOLDER_B)
    _, action = ledger.submissions[-1]
    assert action.kind == "set_default_excluded"
    assert action.addresses == (HOLDER_A, HOLDER_B)


def test_default_is_scoped_per_currency(db_session: Session, ledger, context, native_context) -> None:
    manager = ExclusionSetManager(db_session, ledger)
    manager.set_default(context, [HOLDER_A])

    assert manager.get_default(native_context).addresses == ()


def test_override_leaves_default_untouched(db_session: Session, ledger, holders, context, clock) -> None:
    manager = ExclusionSetManager(db_session, ledger)
    manager.set_default(context, [HOLDER_A])
    dividends = DividendLedger(db_session, ledger, holders, clock=clock)

    override = manager.materialize_from_source(ListSource([HOLDER_C, "garbage"]))
    with_override = dividends.create(context, name="special", amount=100, exclusions=override)
    with_default = dividends.create(context, name="regular", amount=100)

    assert with_override.exclusions == [HOLDER_C]
    assert with_default.exclusions == [HOLDER_A]
    assert manager.get_default(context).addresses == (HOLDER_A,)


def test_default_change_does_not_touch_existing_dividends(
    db_session: Session, ledger, holders, context, clock
) -> None:
    manager = ExclusionSetManager(db_session, ledger)
    manager.set_default(context, [HOLDER_A])
    dividends = DividendLedger(db_session, ledger, holders, clock=clock)
    dividend = dividends.create(context, name="q1", amount=100)

    manager.set_default(context, [HOLDER_B])

    assert dividends.get(context, dividend.dividend_index).exclusions == [HOLDER_A]

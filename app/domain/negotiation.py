from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date


class AgreementState:
    """Outcome of comparing the landlord's and tenants' proposed end dates.

    UNDECIDED is distinct from DISAGREED: one side simply has not proposed yet.
    """

    UNDECIDED = "undecided"
    AGREED = "agreed"
    DISAGREED = "disagreed"

    ALL = (UNDECIDED, AGREED, DISAGREED)


@dataclass(frozen=True, slots=True)
class Agreement:
    state: str
    landlord: date | None
    tenants: Mapping[int, date]

    @property
    def is_agreed(self) -> bool:
        return self.state == AgreementState.AGREED

    @property
    def agreed_end_date(self) -> date | None:
        return self.landlord if self.is_agreed else None


def evaluate_agreement(landlord: date | None, tenants: Mapping[int, date]) -> Agreement:
    """Decide whether both sides agree on an end date.

    - UNDECIDED: no landlord proposal, or no tenant proposal yet
    - AGREED: every tenant proposal so far equals the landlord's
    - DISAGREED: both sides proposed and some tenant date differs
    """
    if landlord is None or not tenants:
        state = AgreementState.UNDECIDED
    elif all(proposed == landlord for proposed in tenants.values()):
        state = AgreementState.AGREED
    else:
        state = AgreementState.DISAGREED
    return Agreement(state=state, landlord=landlord, tenants=dict(tenants))

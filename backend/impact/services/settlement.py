# backend/impact/services/settlement.py
"""Mission completion and reward settlement.

For every supplied participant whose application is still ``accepted`` the
orchestrator runs, in order:

1. claim the accepted application and credit the points, both as
   conditional UPDATEs in one commit;
2. evaluate the citizen level before/after;
3. mint the mission completion token;
4. mint a level badge token when the participant changed tier;
5. pay the mission's XRP reward from the organization account.

Points are committed before any ledger call. Ledger legs are best effort: a
failure is recorded (result + ``transactions`` row with status ``failed``)
and the pipeline moves on. Nothing is rolled back. Once every participant has
been processed the mission is marked completed, whatever the individual
outcomes were.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from impact.errors import ConflictError, ExternalServiceError, PersistenceError
from impact.models import (
    Application,
    ApplicationStatus,
    Mission,
    MissionStatus,
    TransactionStatus,
    TransactionType,
    User,
)
from impact.services import levels
from impact.services.applications import check_transition
from impact.services.ledger import LedgerClient, fit_payload
from impact.services.store import commit_or_raise, get_mission_or_404, record_transaction

logger = logging.getLogger(__name__)

VOLUNTEER_MULTIPLIER = 2
CURRENCY = "XRP"

# optional metadata keys, dropped in this order when a payload is too large
MISSION_TOKEN_DROP_ORDER = ("missionTitle", "citizenIcon", "rewardXRP", "completedAt", "totalPoints")
LEVEL_BADGE_DROP_ORDER = ("icon", "date")


@dataclass
class LedgerOutcome:
    success: bool
    tx_ref: Optional[str] = None
    token_ref: Optional[str] = None
    error: Optional[str] = None
    amount: Optional[Decimal] = None


@dataclass
class ParticipantResult:
    participant_id: int
    success: bool
    earned_points: int = 0
    total_points: int = 0
    previous_level: Optional[str] = None
    citizen_level: Optional[str] = None
    leveled_up: bool = False
    reward_xrp: Decimal = Decimal("0")
    nft: Optional[LedgerOutcome] = None
    level_badge: Optional[LedgerOutcome] = None
    xrp: Optional[LedgerOutcome] = None
    new_achievements: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class SettlementReport:
    mission: Mission
    participants: List[ParticipantResult] = field(default_factory=list)


def format_xrp(amount: Optional[Decimal]) -> str:
    return f"{Decimal(str(amount or 0)).normalize():f}"


def earned_points(mission: Mission) -> int:
    base = mission.points or 1
    return base * (VOLUNTEER_MULTIPLIER if mission.is_volunteer else 1)


def mission_token_payload(mission: Mission, points: int, total: int, level: levels.Level, when: datetime) -> Dict[str, Any]:
    payload = {
        "type": "mission_completion",
        "missionId": mission.id,
        "earnedPoints": points,
        "citizenLevel": level.name,
        "missionTitle": mission.title,
        "citizenIcon": level.icon,
        "rewardXRP": format_xrp(mission.reward_xrp),
        "completedAt": when.strftime("%Y-%m-%dT%H:%M:%SZ"),
        "totalPoints": total,
    }
    return fit_payload(payload, MISSION_TOKEN_DROP_ORDER)


def level_badge_payload(level: levels.Level, total: int, when: datetime) -> Dict[str, Any]:
    payload = {
        "type": "level_badge",
        "level": level.name,
        "points": total,
        "icon": level.icon,
        "date": when.strftime("%Y-%m-%d"),
    }
    return fit_payload(payload, LEVEL_BADGE_DROP_ORDER)


class SettlementOrchestrator:
    def __init__(
        self,
        db: Session,
        ledger: LedgerClient,
        *,
        issuer_secret: Optional[str] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.db = db
        self.ledger = ledger
        self.issuer_secret = issuer_secret
        self.clock = clock

    def complete_mission(self, mission_id: int, participant_ids: Iterable[int]) -> SettlementReport:
        mission = get_mission_or_404(self.db, mission_id)
        if mission.status == MissionStatus.COMPLETED.value:
            raise ConflictError("Mission is already completed")

        organization = self.db.get(User, mission.organization_id)
        report = SettlementReport(mission=mission)

        for participant_id in participant_ids:
            result = self._settle_participant(mission, organization, participant_id)
            if result is not None:
                report.participants.append(result)

        flipped = self.db.execute(
            update(Mission)
            .where(Mission.id == mission.id, Mission.status == MissionStatus.PUBLISHED.value)
            .values(status=MissionStatus.COMPLETED.value, completed_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        commit_or_raise(self.db, "mission completion")
        self.db.refresh(mission)
        if flipped.rowcount != 1:
            logger.info(f"[settlement] mission {mission.id} was closed by a concurrent request")

        failed = sum(1 for r in report.participants if not r.success)
        logger.info(
            f"[settlement] mission {mission.id} completed: "
            f"{len(report.participants)} settled, {failed} failed"
        )
        return report

    # ------------------------------------------------------------------
    def _settle_participant(
        self, mission: Mission, organization: Optional[User], participant_id: int
    ) -> Optional[ParticipantResult]:
        application = self.db.scalar(
            select(Application).where(
                Application.mission_id == mission.id,
                Application.user_id == participant_id,
            )
        )
        if application is None or application.status != ApplicationStatus.ACCEPTED.value:
            logger.info(f"[settlement] skip participant {participant_id}: no accepted application")
            return None
        check_transition(application.status, ApplicationStatus.COMPLETED, mission.status, settlement=True)

        now = self.clock()
        points = earned_points(mission)

        # claim the application; a concurrent completion may have settled it already
        claimed = self.db.execute(
            update(Application)
            .where(
                Application.id == application.id,
                Application.status == ApplicationStatus.ACCEPTED.value,
            )
            .values(status=ApplicationStatus.COMPLETED.value, completed_at=now)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            logger.info(f"[settlement] skip participant {participant_id}: settled by another request")
            return None

        after, missions_after = self.db.execute(
            update(User)
            .where(User.id == participant_id)
            .values(
                points=User.points + points,
                completed_missions=User.completed_missions + 1,
            )
            .returning(User.points, User.completed_missions)
            .execution_options(synchronize_session=False)
        ).one()
        try:
            commit_or_raise(self.db, f"settlement of participant {participant_id}")
        except PersistenceError as e:
            self.db.refresh(mission)
            return ParticipantResult(participant_id=participant_id, success=False, error=e.detail)

        self.db.refresh(application)
        participant = self.db.get(User, participant_id)
        self.db.refresh(participant)

        before = after - points
        change = levels.evaluate(before, after)
        result = ParticipantResult(
            participant_id=participant_id,
            success=True,
            earned_points=points,
            total_points=after,
            previous_level=change.previous.name,
            citizen_level=change.current.name,
            leveled_up=change.leveled_up,
            reward_xrp=mission.reward_xrp or Decimal("0"),
            new_achievements=[
                a.name for a in levels.new_achievements(missions_after - 1, missions_after)
            ],
        )

        result.nft = self._mint(
            TransactionType.MISSION_NFT_MINT,
            mission,
            participant,
            lambda: mission_token_payload(mission, points, after, change.current, now),
            f"Mission completion token for mission {mission.id}",
        )
        if change.leveled_up:
            result.level_badge = self._mint(
                TransactionType.BADGE_MINT,
                mission,
                participant,
                lambda: level_badge_payload(change.current, after, now),
                f"Level badge {change.current.name}",
            )
        if result.reward_xrp > 0 and participant.wallet_address:
            result.xrp = self._pay(mission, organization, participant)

        logger.info(
            f"[settlement] mission {mission.id} participant {participant_id}: +{points} pts "
            f"({before} -> {after}, {change.previous.name} -> {change.current.name}), "
            f"nft={_ok(result.nft)} badge={_ok(result.level_badge)} xrp={_ok(result.xrp)}"
        )
        return result

    def _mint(
        self,
        kind: TransactionType,
        mission: Mission,
        participant: User,
        build_payload: Callable[[], Dict[str, Any]],
        description: str,
    ) -> LedgerOutcome:
        if participant.wallet_secret:
            secret, from_user_id = participant.wallet_secret, participant.id
        elif self.issuer_secret:
            secret, from_user_id = self.issuer_secret, None
        else:
            return LedgerOutcome(success=False, error="No ledger account available to mint")

        try:
            payload = build_payload()
            minted = self.ledger.mint_token(secret, payload)
            outcome = LedgerOutcome(
                success=minted.success, tx_ref=minted.tx_ref, token_ref=minted.token_ref, error=minted.error
            )
            issuer = minted.issuer
        except ExternalServiceError as e:
            outcome, issuer = LedgerOutcome(success=False, error=e.detail), None

        if not outcome.success:
            logger.warning(f"[settlement] {kind.value} failed for user {participant.id}: {outcome.error}")
        self._record(
            kind,
            outcome,
            mission=mission,
            from_user_id=from_user_id,
            to_user_id=participant.id,
            from_wallet=issuer,
            to_wallet=participant.wallet_address,
            description=description,
        )
        return outcome

    def _pay(self, mission: Mission, organization: Optional[User], participant: User) -> LedgerOutcome:
        amount = Decimal(str(mission.reward_xrp))
        if organization is None or not organization.has_wallet:
            logger.warning(f"[settlement] organization of mission {mission.id} has no ledger account")
            return LedgerOutcome(success=False, error="Organization has no ledger account", amount=amount)

        try:
            paid = self.ledger.transfer(organization.wallet_secret, participant.wallet_address, amount)
            outcome = LedgerOutcome(success=paid.success, tx_ref=paid.tx_ref, error=paid.error, amount=amount)
        except ExternalServiceError as e:
            outcome = LedgerOutcome(success=False, error=e.detail, amount=amount)

        if not outcome.success:
            logger.warning(f"[settlement] payment to user {participant.id} failed: {outcome.error}")
        self._record(
            TransactionType.REWARD_PAYMENT,
            outcome,
            mission=mission,
            from_user_id=organization.id,
            to_user_id=participant.id,
            from_wallet=organization.wallet_address,
            to_wallet=participant.wallet_address,
            amount=amount,
            currency=CURRENCY,
            description=f"Reward for mission {mission.id}",
        )
        return outcome

    def _record(self, kind: TransactionType, outcome: LedgerOutcome, *, mission: Mission, description: str, **fields) -> None:
        status = TransactionStatus.COMPLETED if outcome.success else TransactionStatus.FAILED
        if outcome.error:
            description = f"{description}: {outcome.error}"
        try:
            record_transaction(
                self.db,
                type=kind.value,
                status=status.value,
                mission_id=mission.id,
                tx_ref=outcome.tx_ref,
                token_ref=outcome.token_ref,
                description=description,
                **fields,
            )
        except PersistenceError:
            # already logged by commit_or_raise
            self.db.refresh(mission)


def _ok(outcome: Optional[LedgerOutcome]) -> str:
    if outcome is None:
        return "-"
    return "ok" if outcome.success else "failed"

# repository.py
"""
Players and their evaluations.

One repository wraps one request-scoped ``AsyncSession``. Every write commits
once at the end of the operation, so a failure anywhere in it rolls the whole
operation back.
"""
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import classify_integrity_error
from errors import InternalError, NotFoundError, ValidationError
from models import EvaluationDB, PlayerDB
from schemas import SCORE_MAX, SCORE_MIN, DashboardStats

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    """Trim optional text; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class PlayerRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _guard(self, action: str):
        try:
            yield
        except SQLAlchemyError:
            await self.session.rollback()
            logger.exception("Database error while %s", action)
            raise InternalError()

    # Players
    async def list_players(self) -> List[PlayerDB]:
        async with self._guard("listing players"):
            result = await self.session.execute(
                select(PlayerDB).order_by(PlayerDB.created_at.desc(), PlayerDB.id.desc())
            )
            return list(result.scalars().all())

    async def get_player(self, player_id: int) -> PlayerDB:
        async with self._guard(f"loading player {player_id}"):
            player = await self.session.get(PlayerDB, player_id)
        if player is None:
            raise NotFoundError("player not found")
        return player

    async def create_player(
        self,
        full_name: Optional[str],
        birthdate: Optional[str] = None,
        position: Optional[str] = None,
    ) -> PlayerDB:
        full_name = _clean(full_name)
        if not full_name:
            raise ValidationError("full_name is required")

        player = PlayerDB(full_name=full_name, birthdate=_clean(birthdate), position=_clean(position))
        async with self._guard("creating a player"):
            self.session.add(player)
            await self.session.commit()
            await self.session.refresh(player)
        logger.info("Player %s created: %s", player.id, player.full_name)
        return player

    async def delete_player(self, player_id: int) -> None:
        """Delete a player together with its evaluations, all or nothing."""
        async with self._guard(f"deleting player {player_id}"):
            if await self.session.get(PlayerDB, player_id) is None:
                raise NotFoundError("player not found")

            evaluations = await self.session.execute(
                delete(EvaluationDB).where(EvaluationDB.player_id == player_id)
            )
            players = await self.session.execute(delete(PlayerDB).where(PlayerDB.id == player_id))
            if players.rowcount == 0:
                # removed by a concurrent request; keep the evaluations untouched
                await self.session.rollback()
                raise NotFoundError("player not found")
            await self.session.commit()
        logger.info("Player %s deleted with %s evaluation(s)", player_id, evaluations.rowcount)

    # Evaluations
    async def list_evaluations(self, player_id: int) -> List[EvaluationDB]:
        async with self._guard(f"listing evaluations of player {player_id}"):
            result = await self.session.execute(
                select(EvaluationDB)
                .where(EvaluationDB.player_id == player_id)
                .order_by(EvaluationDB.date.desc(), EvaluationDB.id.desc())
            )
            return list(result.scalars().all())

    async def create_evaluation(
        self,
        player_id: int,
        date: Optional[str],
        evaluator_name: Optional[str] = None,
        notes: Optional[str] = None,
        score: Optional[int] = None,
    ) -> EvaluationDB:
        date = _clean(date)
        if not date:
            raise ValidationError("date is required")
        if score is not None and (isinstance(score, bool) or not SCORE_MIN <= score <= SCORE_MAX):
            raise ValidationError("score is out of range")
        await self.get_player(player_id)

        evaluation = EvaluationDB(
            player_id=player_id,
            evaluator_name=_clean(evaluator_name),
            date=date,
            notes=_clean(notes),
            score=score,
        )
        async with self._guard(f"creating an evaluation for player {player_id}"):
            try:
                self.session.add(evaluation)
                await self.session.commit()
            except IntegrityError as exc:
                await self.session.rollback()
                violation = classify_integrity_error(exc)
                if violation.kind == "foreign_key":
                    raise NotFoundError("player not found")
                raise
            await self.session.refresh(evaluation)
        logger.info("Evaluation %s added for player %s", evaluation.id, player_id)
        return evaluation

    # Dashboard
    async def dashboard_stats(self) -> DashboardStats:
        async with self._guard("computing dashboard stats"):
            players_count = await self.session.scalar(select(func.count()).select_from(PlayerDB))
            evals_count = await self.session.scalar(select(func.count()).select_from(EvaluationDB))
            avg = await self.session.scalar(
                select(func.avg(EvaluationDB.score)).where(EvaluationDB.score.is_not(None))
            )
        return DashboardStats(
            players_count=players_count or 0,
            evals_count=evals_count or 0,
            avg_score=round(float(avg), 2) if avg is not None else None,
        )

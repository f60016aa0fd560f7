"""Late-bracket resolution: late minutes to a named score weight.

The resolver itself is pure and works on an explicitly passed
``BracketConfig``; ``LateBracketService`` builds that config per request
from storage (session scope merged over the global scope) and owns the
configuration writes, which is where malformed brackets are rejected.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from checkin import db
from checkin.models.late_bracket import LateBracket
from checkin.utils.errors import ConfigurationError

FALLBACK_WEIGHT = 0.50


@dataclass(frozen=True)
class Bracket:
    """Closed range ``[min_minutes, max_minutes]``; max None is unbounded."""
    min_minutes: int
    max_minutes: Optional[int]
    name: str
    score_weight: float
    color: Optional[str] = None

    def covers(self, minutes: int) -> bool:
        if minutes < self.min_minutes:
            return False
        return self.max_minutes is None or minutes <= self.max_minutes

    def to_dict(self) -> Dict:
        return {
            'min_minutes': self.min_minutes,
            'max_minutes': self.max_minutes,
            'name': self.name,
            'score_weight': self.score_weight,
            'color': self.color,
        }


@dataclass(frozen=True)
class BracketConfig:
    session_brackets: Tuple[Bracket, ...] = ()
    global_brackets: Tuple[Bracket, ...] = ()
    fallback_weight: float = FALLBACK_WEIGHT


@dataclass(frozen=True)
class BracketResult:
    label: str
    score_weight: float
    scope: str  # on_time | session | global | fallback
    color: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            'label': self.label,
            'score_weight': self.score_weight,
            'scope': self.scope,
            'color': self.color,
        }


DEFAULT_BRACKETS: Tuple[Bracket, ...] = (
    Bracket(1, 5, 'Minor', 0.95, '#22c55e'),
    Bracket(6, 15, 'Moderate', 0.80, '#eab308'),
    Bracket(16, 30, 'Significant', 0.60, '#f97316'),
    Bracket(31, 60, 'Severe', 0.40, '#ef4444'),
    Bracket(61, None, 'Very Late', 0.20, '#991b1b'),
)

ON_TIME = BracketResult('on time', 1.0, 'on_time', '#22c55e')


def _first_match(brackets: Iterable[Bracket], minutes: int) -> Optional[Bracket]:
    for bracket in sorted(brackets, key=lambda b: b.min_minutes, reverse=True):
        if bracket.covers(minutes):
            return bracket
    return None


def resolve_bracket(late_minutes: Optional[int], config: BracketConfig = None) -> BracketResult:
    """Map late minutes to a bracket.

    Session brackets win over global ones for any minute they cover; a
    minute no bracket covers gets ``config.fallback_weight``.
    """
    if late_minutes is None or late_minutes <= 0:
        return ON_TIME

    if config is None:
        config = BracketConfig(global_brackets=DEFAULT_BRACKETS)

    for scope, brackets in (('session', config.session_brackets),
                            ('global', config.global_brackets)):
        match = _first_match(brackets, late_minutes)
        if match is not None:
            return BracketResult(match.name, match.score_weight, scope, match.color)

    return BracketResult('Unclassified', config.fallback_weight, 'fallback')


def validate_brackets(brackets: Sequence[Bracket], is_global: bool = False) -> List[Bracket]:
    """Return brackets sorted by ``min_minutes`` or raise ConfigurationError.

    Ranges inside one scope must be contiguous: no overlaps and no gaps. The
    global scope must start at minute 1 so every late minute resolves.
    """
    ordered = sorted(brackets, key=lambda b: b.min_minutes)

    for bracket in ordered:
        if not bracket.name or not bracket.name.strip():
            raise ConfigurationError("Every bracket needs a name")
        if bracket.min_minutes < 1:
            raise ConfigurationError(f"Bracket '{bracket.name}' must start at 1 minute or later")
        if bracket.max_minutes is not None and bracket.max_minutes < bracket.min_minutes:
            raise ConfigurationError(f"Bracket '{bracket.name}' ends before it starts")
        if not 0 <= bracket.score_weight <= 1:
            raise ConfigurationError(f"Bracket '{bracket.name}' weight must be between 0 and 1")

    for previous, current in zip(ordered, ordered[1:]):
        if previous.max_minutes is None or current.min_minutes <= previous.max_minutes:
            raise ConfigurationError(
                f"Brackets '{previous.name}' and '{current.name}' overlap"
            )
        if current.min_minutes > previous.max_minutes + 1:
            raise ConfigurationError(
                f"Gap between brackets '{previous.name}' and '{current.name}' "
                f"(minutes {previous.max_minutes + 1}-{current.min_minutes - 1} are not covered)"
            )

    if is_global and ordered and ordered[0].min_minutes != 1:
        raise ConfigurationError("Global brackets must start at 1 minute")

    return ordered


def brackets_from_payload(items) -> List[Bracket]:
    """Build brackets from request JSON (list of dicts)."""
    if not isinstance(items, list):
        raise ConfigurationError("Brackets must be a list")

    brackets = []
    for item in items:
        if not isinstance(item, dict):
            raise ConfigurationError("Each bracket must be an object")
        try:
            brackets.append(Bracket(
                min_minutes=int(item['min_minutes']),
                max_minutes=int(item['max_minutes']) if item.get('max_minutes') is not None else None,
                name=str(item.get('name') or item.get('bracket_name') or ''),
                score_weight=float(item['score_weight']),
                color=item.get('color') or item.get('display_color'),
            ))
        except KeyError as e:
            raise ConfigurationError(f"Bracket is missing field: {e.args[0]}")
        except (TypeError, ValueError):
            raise ConfigurationError("Bracket fields must be numeric")
    return brackets


class LateBracketService:
    """Storage-backed bracket configuration."""

    @staticmethod
    def _to_bracket(row: LateBracket) -> Bracket:
        return Bracket(row.min_minutes, row.max_minutes, row.bracket_name,
                       row.score_weight, row.display_color)

    @staticmethod
    def list_brackets(session_id: Optional[int]) -> List[Bracket]:
        """Brackets of one scope; ``session_id`` None is the global scope."""
        query = LateBracket.query.filter(LateBracket.session_id.is_(None)) if session_id is None \
            else LateBracket.query.filter_by(session_id=session_id)
        return [LateBracketService._to_bracket(row)
                for row in query.order_by(LateBracket.min_minutes).all()]

    @staticmethod
    def load_config(session_id: Optional[int] = None) -> BracketConfig:
        """Configuration for one request: session scope over global scope.

        An empty global scope falls back to ``DEFAULT_BRACKETS``.
        """
        session_brackets = LateBracketService.list_brackets(session_id) if session_id is not None else []
        global_brackets = LateBracketService.list_brackets(None) or list(DEFAULT_BRACKETS)
        return BracketConfig(
            session_brackets=tuple(session_brackets),
            global_brackets=tuple(global_brackets),
            fallback_weight=current_app.config.get('LATE_FALLBACK_WEIGHT', FALLBACK_WEIGHT),
        )

    @staticmethod
    def resolve(late_minutes: Optional[int], session_id: Optional[int] = None) -> BracketResult:
        return resolve_bracket(late_minutes, LateBracketService.load_config(session_id))

    @staticmethod
    def replace_brackets(session_id: Optional[int], brackets: Sequence[Bracket]) -> List[Bracket]:
        """Validate then swap a scope's brackets in one transaction."""
        ordered = validate_brackets(brackets, is_global=session_id is None)

        scope = LateBracket.query.filter(LateBracket.session_id.is_(None)) if session_id is None \
            else LateBracket.query.filter_by(session_id=session_id)
        try:
            scope.delete(synchronize_session=False)
            for bracket in ordered:
                db.session.add(LateBracket(
                    session_id=session_id,
                    min_minutes=bracket.min_minutes,
                    max_minutes=bracket.max_minutes,
                    bracket_name=bracket.name,
                    score_weight=bracket.score_weight,
                    display_color=bracket.color,
                ))
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

        current_app.logger.info(
            'Replaced %d late brackets for %s', len(ordered),
            f'session {session_id}' if session_id is not None else 'global scope'
        )
        return ordered

    @staticmethod
    def seed_defaults(overwrite: bool = False) -> int:
        """Install the default global brackets; returns how many were written."""
        if not overwrite and LateBracket.query.filter(LateBracket.session_id.is_(None)).count():
            return 0
        return len(LateBracketService.replace_brackets(None, DEFAULT_BRACKETS))

"""Late-minute scoring brackets."""
from checkin import db
from checkin.models.base import BaseModel


class LateBracket(BaseModel):
    """Range of late minutes mapped to a score weight.

    ``session_id`` NULL means a global bracket; ``max_minutes`` NULL means
    the range is unbounded above.
    """

    __tablename__ = 'late_brackets'
    __table_args__ = (
        db.UniqueConstraint('session_id', 'min_minutes', name='uq_late_bracket_scope_min'),
        db.CheckConstraint('score_weight >= 0 AND score_weight <= 1', name='check_score_weight_range'),
    )

    session_id = db.Column(db.Integer, db.ForeignKey('sessions.id'), nullable=True, index=True)
    min_minutes = db.Column(db.Integer, nullable=False)
    max_minutes = db.Column(db.Integer, nullable=True)
    bracket_name = db.Column(db.String(50), nullable=False)
    score_weight = db.Column(db.Float, nullable=False)
    display_color = db.Column(db.String(20), nullable=True)

    def __repr__(self):
        upper = self.max_minutes if self.max_minutes is not None else '∞'
        return f'<LateBracket {self.bracket_name} {self.min_minutes}-{upper}>'

"""Customer feedback collected through a one-time link."""
from datetime import datetime
import secrets

from app import db


class Feedback(db.Model):
    """Rating of a finished repair, submitted by the customer."""
    __tablename__ = 'feedbacks'

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey('shops.id'), nullable=False, index=True)
    repair_id = db.Column(db.Integer, db.ForeignKey('repairs.id', ondelete='CASCADE'), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=False)
    feedback_token = db.Column(db.String(64), unique=True, nullable=False, index=True)
    rating = db.Column(db.Integer)  # 1-5, NULL until submitted
    comment = db.Column(db.Text)
    submitted_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    repair = db.relationship('Repair', backref=db.backref(
        'feedbacks', lazy='dynamic', cascade='all, delete-orphan'))

    def __repr__(self):
        return f'<Feedback repair={self.repair_id} rating={self.rating}>'

    @classmethod
    def create_for_repair(cls, repair) -> 'Feedback':
        """Create a feedback token for a repair (not yet committed)."""
        return cls(
            shop_id=repair.shop_id,
            repair_id=repair.id,
            customer_id=repair.customer_id,
            feedback_token=secrets.token_urlsafe(32),
        )

    @property
    def is_submitted(self) -> bool:
        return self.submitted_at is not None

    def to_dict(self):
        """Return dictionary representation."""
        return {
            'id': self.id,
            'repair_id': self.repair_id,
            'customer_id': self.customer_id,
            'rating': self.rating,
            'comment': self.comment,
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

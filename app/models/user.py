"""User Model for authentication."""
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin

from app import db


class User(UserMixin, db.Model):
    """User entity for authentication and authorization.

    Shop owners, employees and kiosk accounts belong to exactly one shop.
    Employees and kiosk accounts point to their owner via parent_user_id.
    Superadmins and multi-shop admins have no shop of their own; their
    access to shop data goes through support access or explicit grants.
    """

    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    first_name = db.Column(db.String(50))
    last_name = db.Column(db.String(50))
    rolle_id = db.Column(db.Integer, db.ForeignKey('rolle.id'), nullable=False)
    shop_id = db.Column(db.Integer, db.ForeignKey('shops.id'), nullable=True, index=True)
    parent_user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    can_assign_multi_shop_admins = db.Column(db.Boolean, default=False, nullable=False)
    last_login_at = db.Column(db.DateTime)
    last_logout_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    employees = db.relationship(
        'User',
        backref=db.backref('parent_user', remote_side=[id]),
        lazy='dynamic'
    )

    def __repr__(self):
        return f'<User {self.username}>'

    def set_password(self, password):
        """Hash and set the password."""
        self.password_hash = generate_password_hash(password, method='pbkdf2:sha256')

    def check_password(self, password):
        """Check if password matches hash."""
        return check_password_hash(self.password_hash, password)

    @property
    def rolle(self):
        """Role name of this user."""
        return self.rolle_obj.name if self.rolle_obj else None

    @property
    def is_superadmin(self):
        return self.rolle == 'superadmin'

    @property
    def is_multi_shop_admin(self):
        return self.rolle == 'multi_shop_admin'

    @property
    def is_owner(self):
        return self.rolle == 'owner'

    @property
    def is_employee(self):
        return self.rolle == 'employee'

    @property
    def is_kiosk(self):
        return self.rolle == 'kiosk'

    @property
    def full_name(self):
        """Return full name, falling back to the username."""
        name = f'{self.first_name or ""} {self.last_name or ""}'.strip()
        return name or self.username

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'rolle': self.rolle,
            'shop_id': self.shop_id,
            'parent_user_id': self.parent_user_id,
            'is_active': self.is_active,
            'can_assign_multi_shop_admins': self.can_assign_multi_shop_admins,
            'last_login_at': self.last_login_at.isoformat() if self.last_login_at else None,
        }

from extensions import db
from flask_login import UserMixin

HACKERRANK_NOT_LINKED = "NOT_LINKED"
HACKERRANK_LINKED = "LINKED"
HACKERRANK_EXPIRED = "EXPIRED"


class User(UserMixin, db.Model):
    __tablename__ = "users"

    user_id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    role_id = db.Column(
        db.Integer,
        db.ForeignKey("roles.role_id"),
        nullable=False
    )

    hackerrank_username = db.Column(db.String(100), nullable=True)
    hackerrank_cookie = db.Column(db.Text, nullable=True)
    hackerrank_cookie_status = db.Column(
        db.String(20),
        nullable=False,
        default=HACKERRANK_NOT_LINKED
    )
    leetcode_username = db.Column(db.String(100), nullable=True)

    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    submissions = db.relationship("Submission", backref="user", lazy=True)

    # Flask-Login looks for "id", the column is "user_id".
    def get_id(self):
        return str(self.user_id)

    @property
    def is_teacher(self):
        return self.role is not None and self.role.role_name == "TEACHER"

    @property
    def is_student(self):
        return self.role is not None and self.role.role_name == "STUDENT"

    def to_dict(self):
        return {
            "id": self.user_id,
            "username": self.username,
            "email": self.email,
            "role": self.role.role_name if self.role else None,
            "hackerrankUsername": self.hackerrank_username,
            "hackerrankCookieStatus": self.hackerrank_cookie_status,
            "leetcodeUsername": self.leetcode_username,
        }

    def __repr__(self):
        return f"<User {self.username}>"

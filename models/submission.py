from extensions import db


class Submission(db.Model):
    """Completion record of one student for one assignment problem."""

    __tablename__ = "submissions"

    submission_id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.user_id"),
        nullable=False
    )

    problem_id = db.Column(
        db.Integer,
        db.ForeignKey("problems.problem_id"),
        nullable=False
    )

    completed = db.Column(db.Boolean, nullable=False, default=False)
    submission_time = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("user_id", "problem_id", name="unique_user_problem"),
    )

    def to_dict(self):
        return {
            "id": self.submission_id,
            "userId": self.user_id,
            "problemId": self.problem_id,
            "completed": self.completed,
            "submissionTime": self.submission_time.isoformat() if self.submission_time else None,
        }

    def __repr__(self):
        return f"<Submission user={self.user_id} problem={self.problem_id}>"

from extensions import db

SESSION_IN_PROGRESS = "IN_PROGRESS"
SESSION_SUBMITTED = "SUBMITTED"

STATUS_QUEUED = "QUEUED"
STATUS_PROCESSING = "PROCESSING"
STATUS_ACCEPTED = "ACCEPTED"
STATUS_WRONG_ANSWER = "WRONG_ANSWER"
STATUS_TIME_LIMIT_EXCEEDED = "TIME_LIMIT_EXCEEDED"
STATUS_COMPILATION_ERROR = "COMPILATION_ERROR"
STATUS_RUNTIME_ERROR = "RUNTIME_ERROR"
STATUS_SYSTEM_ERROR = "SYSTEM_ERROR"


class TestSession(db.Model):
    __tablename__ = "test_sessions"

    session_id = db.Column(db.Integer, primary_key=True)

    test_id = db.Column(
        db.Integer,
        db.ForeignKey("coding_tests.test_id"),
        nullable=False
    )

    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.user_id"),
        nullable=False
    )

    status = db.Column(db.String(20), nullable=False, default=SESSION_IN_PROGRESS)
    current_problem_index = db.Column(db.Integer, nullable=False, default=0)
    penalty_count = db.Column(db.Integer, nullable=False, default=0)
    started_at = db.Column(db.DateTime, server_default=db.func.now())
    submitted_at = db.Column(db.DateTime, nullable=True)
    last_activity = db.Column(db.DateTime, server_default=db.func.now())

    submissions = db.relationship(
        "TestSubmission",
        backref="session",
        lazy=True,
        order_by="TestSubmission.submission_id.desc()",
        cascade="all, delete"
    )
    penalties = db.relationship(
        "TestPenalty",
        backref="session",
        lazy=True,
        order_by="TestPenalty.penalty_id.desc()",
        cascade="all, delete"
    )

    __table_args__ = (
        db.UniqueConstraint("test_id", "user_id", name="unique_test_user"),
    )

    def to_dict(self):
        return {
            "id": self.session_id,
            "testId": self.test_id,
            "userId": self.user_id,
            "status": self.status,
            "currentProblemIndex": self.current_problem_index,
            "penaltyCount": self.penalty_count,
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "submittedAt": self.submitted_at.isoformat() if self.submitted_at else None,
            "lastActivity": self.last_activity.isoformat() if self.last_activity else None,
        }

    def __repr__(self):
        return f"<TestSession test={self.test_id} user={self.user_id} {self.status}>"


class TestSubmission(db.Model):
    __tablename__ = "test_submissions"

    submission_id = db.Column(db.Integer, primary_key=True)

    session_id = db.Column(
        db.Integer,
        db.ForeignKey("test_sessions.session_id"),
        nullable=False
    )

    problem_id = db.Column(
        db.Integer,
        db.ForeignKey("test_problems.problem_id"),
        nullable=False
    )

    code = db.Column(db.Text, nullable=False)
    language = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(30), nullable=False, default=STATUS_QUEUED)
    score = db.Column(db.Integer, nullable=True)
    execution_time = db.Column(db.Float, nullable=True)  # seconds
    memory_used = db.Column(db.Integer, nullable=True)  # KB
    judge_response = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    problem = db.relationship("TestProblem", lazy=True)

    def to_dict(self):
        return {
            "id": self.submission_id,
            "problemId": self.problem_id,
            "code": self.code,
            "language": self.language,
            "status": self.status,
            "score": self.score or 0,
            "executionTime": self.execution_time or 0,
            "memoryUsed": self.memory_used or 0,
            "submittedAt": self.created_at.isoformat() if self.created_at else None,
            "judgeResponse": self.judge_response,
        }

    def __repr__(self):
        return f"<TestSubmission {self.submission_id} {self.status}>"


class TestPenalty(db.Model):
    __tablename__ = "test_penalties"

    penalty_id = db.Column(db.Integer, primary_key=True)

    session_id = db.Column(
        db.Integer,
        db.ForeignKey("test_sessions.session_id"),
        nullable=False
    )

    penalty_type = db.Column(db.String(30), nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    timestamp = db.Column(db.DateTime, server_default=db.func.now())

    def to_dict(self):
        return {
            "id": self.penalty_id,
            "type": self.penalty_type,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<TestPenalty {self.penalty_type} session={self.session_id}>"

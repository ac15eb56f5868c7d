import logging

from extensions import db
from models.role import Role

logger = logging.getLogger(__name__)

ROLE_TEACHER = 1
ROLE_STUDENT = 2


def seed_roles():
    roles = [
        {"role_id": ROLE_TEACHER, "role_name": "TEACHER"},
        {"role_id": ROLE_STUDENT, "role_name": "STUDENT"},
    ]

    for r in roles:
        existing = Role.query.filter(
            (Role.role_id == r["role_id"]) |
            (Role.role_name == r["role_name"])
        ).first()

        if not existing:
            db.session.add(
                Role(
                    role_id=r["role_id"],
                    role_name=r["role_name"]
                )
            )

    db.session.commit()
    logger.info("Roles verified (TEACHER=%s, STUDENT=%s)", ROLE_TEACHER, ROLE_STUDENT)


def run_seed():
    seed_roles()

import pytest

from slotbook.core.enums import RoleName
from slotbook.core.exceptions import RepositoryException
from slotbook.models.user import User
from slotbook.repositories.base_repository import BaseRepository


def test_create_flushes_without_committing(db, session_factory):
    repo = BaseRepository(db, User)

    user = repo.create(name="Meera Iyer", email="meera@example.com", role=RoleName.PROVIDER.value)

    assert user.id
    other = session_factory()
    try:
        assert other.query(User).filter(User.email == "meera@example.com").count() == 0
    finally:
        other.close()
    db.rollback()


def test_create_wraps_integrity_errors(db):
    repo = BaseRepository(db, User)
    repo.create(name="First", email="dup@example.com", role=RoleName.CLIENT.value)

    with pytest.raises(RepositoryException) as exc_info:
        repo.create(name="Second", email="dup@example.com", role=RoleName.CLIENT.value)

    assert "Integrity constraint violated" in str(exc_info.value)
    db.rollback()

import os
import tempfile

# Settings are read at import time
_SCRATCH = tempfile.mkdtemp(prefix="stockroom-tests-")
os.environ["APP_ENV"] = "development"
os.environ["DB_TYPE"] = "sqlite"
os.environ["SQLITE_PATH"] = os.path.join(_SCRATCH, "app.db")
os.environ["BACKUP_DIR"] = os.path.join(_SCRATCH, "backups")
os.environ["JWT_ACCESS_SECRET_KEY"] = "test-secret-key"
os.environ["ENABLE_SCHEDULER"] = "false"
os.environ["FRONTEND_DIST"] = ""

import pytest
from httpx import ASGITransport, AsyncClient

from stockroom.core.db import Database
from stockroom.core.security import hash_password, create_access_token
from stockroom.models.users.user_models import User
from stockroom.schemas.products.product_schemas import ProductCreate
from stockroom.services.backups.backup_service import BackupService
from stockroom.services.products.product_service import create_product


@pytest.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'inventory.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def session(database):
    async with database.session() as s:
        yield s


async def _add_user(session, username: str, role: str, password: str = "secret123") -> User:
    user = User(
        username=username,
        full_name=username.title(),
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def admin_user(session):
    return await _add_user(session, "admin", "admin")


@pytest.fixture
async def regular_user(session):
    return await _add_user(session, "clerk", "user")


@pytest.fixture
def make_product(session, admin_user):
    counter = {"n": 0}

    async def _make(**overrides):
        counter["n"] += 1
        data = {
            "unique_code": f"SKU-{counter['n']:03d}",
            "name": f"Product {counter['n']}",
            "unit": "pcs",
            "min_stock": 5,
        }
        data.update(overrides)
        return await create_product(session, ProductCreate(**data), admin_user)

    return _make


@pytest.fixture
def backup_service(database, tmp_path):
    return BackupService(str(tmp_path / "backups"), database.sqlite_path)


@pytest.fixture
def app(database, backup_service):
    from main import create_app

    return create_app(database=database, backup_service=backup_service, frontend_dist="")


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def bearer(user: User) -> dict:
    token = create_access_token(
        subject=user.username,
        token_version=user.token_version,
        role=user.role,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user):
    return bearer(admin_user)


@pytest.fixture
def user_headers(regular_user):
    return bearer(regular_user)

#!/usr/bin/env python3
"""
sensorboard Database Models - Peewee with default primary keys

Paradigm: Organization ↔ User
- Organization is the tenant boundary and owns an InfluxDB url/token pair
  (blank values fall back to the configured default endpoint).
- User belongs to one organization and authenticates with api_token.

Notes:
- SQLite FK enforcement is turned ON at connect().
- The query layer only reads these tables.
"""

import logging
import secrets
import time
from pathlib import Path
from typing import Optional, Dict, Any

from peewee import (
    Model, SqliteDatabase, CharField, IntegerField, TextField, ForeignKeyField, Check
)

logger = logging.getLogger("sensorboard.models")

# Global DB handle (initialized in DatabaseManager.connect)
database = SqliteDatabase(None)

USER_ROLES = ("admin", "client")
USER_STATUSES = ("active", "inactive", "suspended")


class BaseModel(Model):
    class Meta:
        database = database
        legacy_table_names = False


class Organization(BaseModel):
    """Tenant with its own time-series endpoint (id added implicitly by Peewee)."""
    name = CharField(unique=True)
    description = TextField(null=True)
    influx_url = CharField(null=True)
    influx_token = TextField(null=True)
    created_at = IntegerField()
    updated_at = IntegerField()

    @classmethod
    def create_organization(cls, name: str, description: Optional[str] = None,
                            influx_url: Optional[str] = None,
                            influx_token: Optional[str] = None) -> "Organization":
        now = int(time.time())
        return cls.create(
            name=name,
            description=description,
            influx_url=influx_url,
            influx_token=influx_token,
            created_at=now,
            updated_at=now,
        )

    def to_dict(self) -> Dict[str, Any]:
        # Token never leaves the server; only whether one is set
        return {
            "organization_id": self.id,
            "name": self.name,
            "description": self.description,
            "influx_url": self.influx_url,
            "has_influx_token": bool(self.influx_token),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class User(BaseModel):
    """Dashboard user; api_token is the bearer credential for data routes."""
    username = CharField(unique=True)
    role = CharField(constraints=[Check("role IN ('admin','client')")])
    organization = ForeignKeyField(Organization, backref="users", on_delete="CASCADE", index=True)
    api_token = CharField(unique=True)
    status = CharField(default="active")
    created_at = IntegerField()
    last_seen = IntegerField(null=True)

    @classmethod
    def get_by_token(cls, token: str) -> Optional["User"]:
        try:
            return cls.get(cls.api_token == token)
        except cls.DoesNotExist:
            return None

    @classmethod
    def create_user(cls, username: str, organization_id: int, role: str = "client") -> "User":
        return cls.create(
            username=username.strip().lower(),
            role=role,
            organization=organization_id,
            api_token=secrets.token_urlsafe(32),
            status="active",
            created_at=int(time.time()),
        )

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def update_last_seen(self, ts: Optional[int] = None) -> None:
        self.last_seen = ts or int(time.time())
        self.save()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.id,
            "username": self.username,
            "role": self.role,
            "organization_id": self.organization_id,
            "status": self.status,
            "created_at": self.created_at,
            "last_seen": self.last_seen,
        }


ALL_MODELS = [Organization, User]


class DatabaseManager:
    """DB lifecycle + minimal convenience ops."""

    def __init__(self, db_path: str = "./sensorboard.db") -> None:
        self.db_path = Path(db_path)
        self.connected = False

    def connect(self) -> bool:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            database.init(str(self.db_path))
            database.connect(reuse_if_open=True)

            # SQLite pragmas for reliability/perf
            database.execute_sql("PRAGMA foreign_keys=ON;")
            database.execute_sql("PRAGMA journal_mode=WAL;")
            database.execute_sql("PRAGMA synchronous=NORMAL;")

            database.create_tables(ALL_MODELS, safe=True)
            self.connected = True
            logger.info(f"database initialized: {self.db_path}")
            return True
        except Exception as e:
            logger.error(f"database init failed: {e}")
            return False

    def close(self) -> None:
        if self.connected:
            database.close()
            self.connected = False
            logger.info("database connection closed")

    def get_stats(self) -> Dict[str, Any]:
        try:
            return {
                "organizations_total": Organization.select().count(),
                "users_total": User.select().count(),
                "users_active": User.select().where(User.status == "active").count(),
                "database_size_mb": round(self.db_path.stat().st_size / 1024 / 1024, 2)
                if self.db_path.exists() else 0,
            }
        except Exception as e:
            logger.error(f"get_stats failed: {e}")
            return {}

"""
Firebase Realtime Database backend.

Credential priority:
    1. FIREBASE_SERVICE_ACCOUNT_BASE64 (CI and hosted deployments)
    2. FIREBASE_CREDENTIALS_PATH (local service account file)
    3. Application Default Credentials

The Admin SDK is blocking, so every call runs in a worker thread. The SDK does
not expose transactions across sibling paths through ``update``; the multi-path
write below is a single PATCH at the root and is applied best effort.
"""
import asyncio
import base64
import json
import logging
from typing import Any, Callable, Dict, Optional

import firebase_admin
from firebase_admin import credentials, db
from firebase_admin.exceptions import FirebaseError

from haulage.config import settings
from haulage.db.repository import (
    GraphRepository,
    FOLLOWING,
    EDGE_DIRECTIONS,
    edge_path,
    stats_path,
    user_path,
)
from haulage.exceptions import StoreError, ValidationError

logger = logging.getLogger(__name__)

APP_NAME = "haulage"


def init_firebase_app() -> firebase_admin.App:
    """Initialize the Firebase app (once) and return it"""
    try:
        return firebase_admin.get_app(APP_NAME)
    except ValueError:
        pass

    if not settings.FIREBASE_DATABASE_URL:
        raise StoreError("FIREBASE_DATABASE_URL is not configured")

    if settings.FIREBASE_SERVICE_ACCOUNT_BASE64:
        info = json.loads(base64.b64decode(settings.FIREBASE_SERVICE_ACCOUNT_BASE64))
        cred = credentials.Certificate(info)
    elif settings.FIREBASE_CREDENTIALS_PATH:
        cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
    else:
        cred = credentials.ApplicationDefault()

    options = {"databaseURL": settings.FIREBASE_DATABASE_URL}
    if settings.FIREBASE_PROJECT_ID:
        options["projectId"] = settings.FIREBASE_PROJECT_ID

    app = firebase_admin.initialize_app(cred, options=options, name=APP_NAME)
    logger.info(f"Firebase app initialized for {settings.FIREBASE_DATABASE_URL}")
    return app


class FirebaseGraphRepository(GraphRepository):
    name = "firebase"

    def __init__(self, app: Optional[firebase_admin.App] = None):
        self.app = app

    def _ref(self, path: str = "/"):
        return db.reference(path, app=self.app)

    async def _call(self, func: Callable, *args, **kwargs) -> Any:
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except FirebaseError as e:
            logger.error(f"Firebase call failed: {e}")
            raise StoreError("Store request failed") from e
        except OSError as e:
            logger.error(f"Firebase transport error: {e}")
            raise StoreError("Store unreachable") from e

    async def user_exists(self, user_id: str) -> bool:
        # Shallow read returns only the top-level keys of the profile
        value = await self._call(self._ref(user_path(user_id)).get, shallow=True)
        return bool(value)

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        value = await self._call(self._ref(user_path(user_id)).get)
        return value or None

    async def get_user_stats(self, user_id: str) -> Optional[Dict[str, Any]]:
        value = await self._call(self._ref(stats_path(user_id)).get)
        return value if isinstance(value, dict) else None

    async def edge_exists(self, follower_id: str, following_id: str) -> bool:
        value = await self._call(
            self._ref(edge_path(follower_id, FOLLOWING, following_id)).get,
            shallow=True,
        )
        return value is not None

    async def get_edges(self, user_id: str, direction: str) -> Dict[str, Any]:
        if direction not in EDGE_DIRECTIONS:
            raise ValidationError(f"Unknown edge direction: {direction}")
        value = await self._call(self._ref(f"{user_path(user_id)}/{direction}").get)
        return value if isinstance(value, dict) else {}

    async def write_multi_path(self, updates: Dict[str, Any]) -> None:
        if not updates:
            return
        await self._call(self._ref("/").update, updates)

    async def put_user(self, user_id: str, profile: Dict[str, Any]) -> None:
        await self._call(self._ref(user_path(user_id)).update, profile)

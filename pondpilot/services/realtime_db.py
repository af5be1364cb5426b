"""Firebase Realtime Database client - async wrapper over firebase_admin.db"""

import asyncio
import inspect
import logging
import os
from typing import Any, Callable, Optional

import firebase_admin
from firebase_admin import credentials, db

from .. import config

logger = logging.getLogger(__name__)

ValueHandler = Callable[[Any], Any]
ErrorHandler = Callable[[Exception], Any]


class Subscription:
    """Handle for a realtime listener; close() tears it down"""

    def __init__(self, path: str, registration=None):
        self.path = path
        self._registration = registration
        self.closed = False

    def close(self):
        if self.closed:
            return
        self.closed = True
        if self._registration is not None:
            try:
                self._registration.close()
            except Exception as e:
                logger.warning(f"Error closing listener on {self.path}: {e}")
        logger.debug(f"Unsubscribed from: {self.path}")


class RealtimeDatabase:
    """Realtime Database access for the dashboard services.

    firebase_admin is blocking, so reads and writes run in worker threads and
    listener events are handed back to the event loop that subscribed.
    """

    def __init__(self, database_url: Optional[str] = None, credentials_path: Optional[str] = None):
        self.database_url = database_url or config.FIREBASE_DATABASE_URL
        self.credentials_path = credentials_path or config.FIREBASE_CREDENTIALS_PATH
        self.connected = False

    def connect(self):
        """Initialize Firebase connection"""
        try:
            if not firebase_admin._apps:
                cred_path = self.credentials_path

                logger.info(f"Loading Firebase credentials from: {cred_path}")

                if not os.path.exists(cred_path):
                    if not os.path.isabs(cred_path):
                        abs_path = os.path.expanduser(f"~/{cred_path}")
                        if os.path.exists(abs_path):
                            cred_path = abs_path
                        else:
                            raise FileNotFoundError(f"Firebase credentials not found at {cred_path} or {abs_path}")
                    else:
                        raise FileNotFoundError(f"Firebase credentials not found at {cred_path}")

                if not os.access(cred_path, os.R_OK):
                    raise PermissionError(f"No read permission for Firebase credentials at {cred_path}")

                if not self.database_url:
                    raise ValueError("FIREBASE_DATABASE_URL is not set")

                cred = credentials.Certificate(cred_path)
                firebase_admin.initialize_app(cred, {
                    'databaseURL': self.database_url
                })

            self.connected = True
            logger.info("Connected to Firebase Realtime Database")

        except Exception as e:
            logger.error(f"Failed to connect to Firebase: {e}", exc_info=True)
            raise

    async def get(self, path: str) -> Any:
        return await asyncio.to_thread(lambda: db.reference(path).get())

    async def set(self, path: str, value: Any) -> None:
        await asyncio.to_thread(lambda: db.reference(path).set(value))

    async def update(self, path: str, values: dict) -> None:
        await asyncio.to_thread(lambda: db.reference(path).update(values))

    def listen(self, path: str, on_value: ValueHandler, on_error: Optional[ErrorHandler] = None) -> Subscription:
        """Call on_value with the full value at path now and on every change.

        Must be called from inside the event loop; handlers run on that loop.
        """
        loop = asyncio.get_running_loop()
        ref = db.reference(path)

        def dispatch(handler, arg):
            asyncio.run_coroutine_threadsafe(_invoke(handler, arg), loop)

        def on_event(event):
            # Events carry patches; re-read so handlers always see the whole value
            try:
                value = ref.get()
            except Exception as e:
                if on_error:
                    dispatch(on_error, e)
                else:
                    logger.error(f"Realtime read error on {path}: {e}")
                return
            dispatch(on_value, value)

        try:
            registration = ref.listen(on_event)
        except Exception as e:
            logger.error(f"Failed to subscribe to {path}: {e}")
            if on_error:
                dispatch(on_error, e)
            return Subscription(path)

        logger.info(f"Subscribed to: {path}")
        return Subscription(path, registration)


async def _invoke(handler, arg):
    try:
        result = handler(arg)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.error(f"Listener handler failed: {e}", exc_info=True)

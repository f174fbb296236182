import asyncio
import dataclasses
import enum
import json
import logging
from typing import Any, Callable, Generic, List, Mapping, Optional, Sequence, Tuple, TypeVar

import aiohttp

from bcc._cogs.aiokits import aioscopes, aiotime
from bcc._cogs.clients import auth, errors, exports, paging, tasks
from bcc._cogs.configs import configuration
from bcc._cogs.helpers import arguments, loggers, typedefs
from bcc._cogs.structs import credentials

_T = TypeVar('_T')

LOCKED_STATUS = 409
TASKS_HEADER = 'X-Esu-Tasks'
LANGUAGE = 'ru-ru'

logger = logging.getLogger('bcc.api')


def as_is(data: Any) -> Any:
    return data


class LockState(enum.Enum):
    """
    The states of one logical call against a possibly locked object.

    ``SENDING`` is the initial state; ``LOCKED`` goes back to ``SENDING``
    after a pause; all other states are terminal.
    """
    SENDING = 'sending'
    LOCKED = 'locked'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    TIMED_OUT = 'timed-out'


def classify_attempt(status: int, error_aliases: Sequence[str]) -> LockState:
    """
    Decide on what to do after one HTTP exchange.

    Not every 409 is a lock: it can be a real conflict of the business logic,
    e.g. an already used name. Such conflicts are never retried.
    """
    if status == LOCKED_STATUS:
        if error_aliases and error_aliases[0] != errors.OBJECT_LOCKED_ALIAS:
            return LockState.FAILED
        return LockState.LOCKED
    elif 200 <= status <= 299:
        return LockState.SUCCEEDED
    else:
        return LockState.FAILED


@dataclasses.dataclass(frozen=True)
class Exchange:
    """
    One fully specified HTTP call. Built anew for every attempt.
    """
    method: str
    url: str
    params: Optional[Mapping[str, str]]
    body: Optional[bytes]
    headers: Mapping[str, str]
    scope: aioscopes.Scope


@dataclasses.dataclass(frozen=True)
class Outcome(Generic[_T]):
    value: Optional[_T]
    task_ids: Tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True)
class Manager:
    """
    An execution context of the API calls: where, as whom, how, and until when.

    The manager is never modified once created. Use `with_scope` to get
    a copy with another cancellation scope, e.g. per-call::

        async with bcc.Manager.create(token) as manager:
            scope = bcc.Scope(timeout=30)
            disks = await manager.with_scope(scope).get_items('v1/disk')

    The session is shared by all the copies, and is closed by the original one.
    """

    info: credentials.ConnectionInfo
    session: aiohttp.ClientSession
    settings: configuration.ClientSettings = dataclasses.field(default_factory=configuration.ClientSettings)
    logger: Optional[typedefs.Logger] = None
    scope: aioscopes.Scope = dataclasses.field(default_factory=aioscopes.Scope)
    tempfiles: Optional[auth.TempFiles] = dataclasses.field(default=None, repr=False, compare=False)

    @classmethod
    def create(
            cls,
            token: str,
            *,
            server: str = configuration.DEFAULT_BASE_URL,
            ca_path: Optional[str] = None,
            ca_data: Optional[bytes] = None,
            certificate_path: Optional[str] = None,
            certificate_data: Optional[bytes] = None,
            private_key_path: Optional[str] = None,
            private_key_data: Optional[bytes] = None,
            insecure: Optional[bool] = None,
            settings: Optional[configuration.ClientSettings] = None,
            logger: Optional[typedefs.Logger] = None,
    ) -> "Manager":
        """
        Construct a manager with its own TLS-capable session.

        Must be called inside of a running event loop (as the session requires).
        """
        info = credentials.ConnectionInfo(
            token=token,
            server=server,
            ca_path=ca_path,
            ca_data=ca_data,
            certificate_path=certificate_path,
            certificate_data=certificate_data,
            private_key_path=private_key_path,
            private_key_data=private_key_data,
            insecure=insecure,
        )
        settings = settings if settings is not None else configuration.ClientSettings()
        tempfiles = auth.TempFiles()
        session = auth.make_session(info, settings=settings, tempfiles=tempfiles)
        return cls(info=info, session=session, settings=settings, logger=logger, tempfiles=tempfiles)

    async def close(self) -> None:
        await self.session.close()

        # Remove the temporary certificate files sooner than on garbage collection.
        if self.tempfiles is not None:
            self.tempfiles.purge()

    async def __aenter__(self) -> "Manager":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def with_scope(self, scope: aioscopes.Scope) -> "Manager":
        return dataclasses.replace(self, scope=scope)

    @property
    def log(self) -> typedefs.Logger:
        return self.logger if self.logger is not None else logger

    def url_for(self, path: str) -> str:
        if '://' in path:
            return path
        return self.info.server.rstrip('/') + '/' + path.lstrip('/')

    def build(
            self,
            method: str,
            path: str,
            *,
            params: Optional[Mapping[str, str]] = None,
            payload: Optional[object] = None,
    ) -> Exchange:
        """
        Compose one HTTP exchange: the method, the URL, the body, the headers.

        The payload is serialized every time anew, so that the retried attempts
        never share the body readers with the previous (consumed) attempts.
        """
        headers = {
            'Authorization': f'Bearer {self.info.token}',
            'Accept-Language': LANGUAGE,
        }
        body: Optional[bytes] = None
        if payload is not None:
            body = json.dumps(payload).encode('utf-8')
            headers['Content-Type'] = 'application/json'
        return Exchange(
            method=method.upper(),
            url=self.url_for(path),
            params=dict(params) if params else None,
            body=body,
            headers=headers,
            scope=self.scope,
        )

    async def request(
            self,
            method: str,
            path: str,
            payload: Optional[object] = None,
            *,
            decode: Optional[typedefs.Decoder[_T]] = None,
    ) -> Optional[_T]:
        """
        Perform a modifying call and wait for all the tasks it has spawned.

        The response is ignored unless a decoder is given. For the downloads
        of the Kubernetes configs, the result is the path of the saved file.
        """
        self.log.debug(f"{method.upper()} {path}")
        if payload is not None:
            self.log.debug(f"Sending {payload!r}")
        outcome = await self.perform(lambda: self.build(method, path, payload=payload), decode=decode)
        await self.wait_tasks(outcome.task_ids)
        return outcome.value

    async def get(
            self,
            path: str,
            args: Optional[Mapping[str, str]] = None,
            *,
            decode: typedefs.Decoder[_T] = as_is,
    ) -> Optional[_T]:
        params = arguments.Arguments(args or {}).to_query()
        self.log.debug(f"GET {path} {params}" if params else f"GET {path}")
        outcome = await self.perform(lambda: self.build('GET', path, params=params), decode=decode)
        return outcome.value

    async def get_items(
            self,
            path: str,
            args: Optional[Mapping[str, str]] = None,
            *,
            decode: typedefs.Decoder[_T] = as_is,
    ) -> List[_T]:
        """
        Fetch all the items of a paginated list, from all the pages, in order.
        """
        return await paging.fetch_all(self, path, args, decode=decode)

    async def get_sub_items(
            self,
            path: str,
            *,
            decode: typedefs.Decoder[_T] = as_is,
    ) -> Optional[_T]:
        """
        Fetch a nested collection of an object, which is never paginated.
        """
        self.log.debug(f"GET {path}")
        outcome = await self.perform(lambda: self.build('GET', path), decode=decode)
        return outcome.value

    async def delete(
            self,
            path: str,
            args: Optional[Mapping[str, str]] = None,
            *,
            decode: Optional[typedefs.Decoder[_T]] = None,
    ) -> Optional[_T]:
        params = arguments.Arguments(args or {}).to_query()
        self.log.debug(f"DELETE {path}")
        outcome = await self.perform(lambda: self.build('DELETE', path, params=params), decode=decode)
        await self.wait_tasks(outcome.task_ids)
        return outcome.value

    async def wait_task(self, task_id: str) -> None:
        await tasks.wait_task(self, task_id)

    async def wait_tasks(self, task_ids: Sequence[str]) -> None:
        await tasks.wait_tasks(self, task_ids)

    async def wait_unlocked(self, path: str) -> None:
        """
        Wait until the object stops being locked by other operations.

        The object is expected to expose its ``locked`` flag in its body.
        """
        while True:
            body = await self.get(path)
            if not isinstance(body, Mapping) or not body.get('locked'):
                break
            self.log.debug(f"Object {path!r} is still locked. Checking again in {configuration.UNLOCK_POLL_INTERVAL}s.")
            await aiotime.sleep(configuration.UNLOCK_POLL_INTERVAL, self.scope)

    async def perform(
            self,
            build: Callable[[], Exchange],
            *,
            decode: Optional[typedefs.Decoder[_T]] = None,
    ) -> Outcome[_T]:
        """
        Perform an HTTP exchange, retrying it while the object is locked.

        All the API calls go through this single choke point. Only the locks are
        retried here; everything else (connectivity, 4xx/5xx, decoding) fails fast.

        The tasks seen in the latest response are reported in the outcome,
        or attached to the raised error (but not waited for) if it has failed.
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        attempt = 0
        task_ids: Tuple[str, ...] = ()
        state = LockState.SENDING
        try:
            while state is LockState.SENDING:
                attempt += 1
                exchange = build()
                log = loggers.RequestLogger(self.log, method=exchange.method, url=exchange.url)
                log.debug(f"Performing {exchange.method} {exchange.url} (attempt #{attempt})...")
                status, headers, body = await self._send(exchange)
                task_ids = tasks.parse_task_ids(headers.get(TASKS_HEADER))

                payload: Optional[errors.RawErrorPayload] = None
                if status == LOCKED_STATUS:
                    payload = errors.parse_payload(body)
                    if payload is None:
                        raise errors.APIDecodeError(f"Cannot read the lock status on {exchange.url}:",
                                                    url=exchange.url, payload=body)

                state = classify_attempt(status, errors.parse_aliases(payload))
                if state is LockState.LOCKED:
                    log.debug(f"Object {exchange.url!r} is locked. "
                              f"Trying again in {configuration.RETRY_INTERVAL}s...")
                    await aiotime.sleep(configuration.RETRY_INTERVAL, exchange.scope)
                    if loop.time() - started > configuration.LOCK_TIMEOUT:
                        state = LockState.TIMED_OUT
                        log.warning(f"Waiting for unlocking of {exchange.url!r} "
                                    f"took more than {configuration.LOCK_TIMEOUT}s.")
                        raise errors.LockTimeoutError(f"Lock timeout on {exchange.url}",
                                                      url=exchange.url, timeout=configuration.LOCK_TIMEOUT)
                    state = LockState.SENDING

            if state is LockState.FAILED:
                log.debug(f"Error response {status} on {exchange.url!r}")
                errors.check_response(url=exchange.url, status=status, body=body)
                raise RuntimeError(f"Unclassified failure with status {status}.")

            log.debug(f"Success response on {exchange.url!r}")
            if task_ids:
                log.debug(f"Tasks spawned: {', '.join(task_ids)}")
            value = self._decode(exchange, body, decode=decode)

        except errors.BCCError as e:
            e.task_ids = task_ids
            raise
        return Outcome(value=value, task_ids=task_ids)

    def _decode(
            self,
            exchange: Exchange,
            body: bytes,
            *,
            decode: Optional[typedefs.Decoder[_T]],
    ) -> Optional[_T]:
        if not body or decode is None:
            return None

        # Not JSON, but a downloadable file.
        if exports.is_kubectl_config(exchange.url):
            path = exports.save_kubectl_config(body, url=exchange.url, base_url=self.info.server)
            self.log.debug(f"The Kubernetes config is saved to {str(path)!r}")
            return path  # type: ignore

        try:
            return decode(json.loads(body))
        except errors.DECODING_ERRORS as e:
            raise errors.APIDecodeError(f"JSON decode failed on {exchange.url}:",
                                        url=exchange.url, payload=body) from e

    async def _send(self, exchange: Exchange) -> Tuple[int, Mapping[str, str], bytes]:
        # The scope's reasons are raised outside of the transport's error wrapping.
        return await exchange.scope.run(self._transmit(exchange))

    async def _transmit(self, exchange: Exchange) -> Tuple[int, Mapping[str, str], bytes]:
        try:
            async with self.session.request(
                method=exchange.method,
                url=exchange.url,
                params=exchange.params,
                data=exchange.body,
                headers=exchange.headers,
            ) as response:
                body = await response.read()
                return response.status, response.headers, body
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise errors.APITransportError(f"HTTP request failure on {exchange.url}: {e!r}",
                                           method=exchange.method, url=exchange.url) from e

"""
Waiting for the server-side tasks spawned by the modifying API calls.

The control plane performs the heavy operations (e.g. creating a VM, attaching
a disk) asynchronously: the API call returns immediately, and the ids of the
spawned tasks (jobs) are reported in the ``X-Esu-Tasks`` response header.
The client then polls every job until it is finished::

    POST v1/vm  -->  201 Created, X-Esu-Tasks: 1f2e..., 3c4d...
    GET v1/job/1f2e...  -->  {"status": "in_progress", "name": "create_vm"}
    GET v1/job/1f2e...  -->  {"status": "done", "name": "create_vm"}
    GET v1/job/3c4d...  -->  {"status": "error", "name": "power_on"}

The tasks are waited for one by one, in the order as reported. The first failed
or timed out task stops the waiting; the following tasks are not waited for.
"""
import asyncio
import collections.abc
import enum
from typing import TYPE_CHECKING, Any, Collection, Optional, Tuple

from typing_extensions import TypedDict

from bcc._cogs.aiokits import aioscopes, aiotime
from bcc._cogs.clients import errors
from bcc._cogs.configs import configuration

if TYPE_CHECKING:
    from bcc._cogs.clients import api

JOB_PATH = 'v1/job'
ERROR_STATUS = 'error'

# All other statuses, except the error one, are final.
IN_PROGRESS_STATUSES: Collection[str] = frozenset({'in_progress'})


class RawJob(TypedDict, total=False):
    status: str
    name: str


class TaskState(enum.Enum):
    POLLING = 'polling'
    DONE = 'done'
    FAILED = 'failed'
    TIMED_OUT = 'timed-out'


def parse_task_ids(header: Optional[str]) -> Tuple[str, ...]:
    """ Parse a comma-separated header value; blanks are skipped. """
    if not header:
        return ()
    stripped = (task_id.strip() for task_id in header.split(','))
    return tuple(task_id for task_id in stripped if task_id)


def classify_job(job: RawJob) -> TaskState:
    status = job.get('status')
    if status == ERROR_STATUS:
        return TaskState.FAILED
    elif status in IN_PROGRESS_STATUSES:
        return TaskState.POLLING
    else:
        return TaskState.DONE


def decode_job(data: Any) -> RawJob:
    if not isinstance(data, collections.abc.Mapping):
        raise TypeError(f"A job must be an object, got {type(data).__name__}.")
    return RawJob(status=data.get('status', ''), name=data.get('name', ''))


async def wait_task(
        manager: "api.Manager",
        task_id: str,
) -> None:
    if not task_id:
        raise ValueError("A task id cannot be empty.")

    manager.log.debug(f"Start waiting for the task {task_id}...")
    loop = asyncio.get_running_loop()
    started = loop.time()
    state = TaskState.POLLING
    while state is TaskState.POLLING:

        # A locked job can be retried for long, but not beyond the task's own timeout.
        elapsed = loop.time() - started
        poll_scope = aioscopes.Scope(timeout=configuration.TASK_TIMEOUT - elapsed, parent=manager.scope)
        try:
            job = await manager.with_scope(poll_scope).get(f'{JOB_PATH}/{task_id}', decode=decode_job)
        except aioscopes.ScopeDeadlineError:
            manager.scope.check()  # the caller's own cancellation & deadline go as is
            raise _timed_out(manager, task_id)

        state = classify_job(job or RawJob())
        if state is TaskState.FAILED:
            step = (job or RawJob()).get('name')
            manager.log.error(f"Task {task_id} has failed at the step {step!r}.")
            raise errors.TaskFailedError(f"Task {task_id} is in the error status, step: {step}",
                                         task_id=task_id, step=step)
        elif state is TaskState.POLLING:
            await aiotime.sleep(configuration.RETRY_INTERVAL, manager.scope)
            if loop.time() - started > configuration.TASK_TIMEOUT:
                state = TaskState.TIMED_OUT
                raise _timed_out(manager, task_id)

    manager.log.debug(f"End waiting for the task {task_id}.")


async def wait_tasks(
        manager: "api.Manager",
        task_ids: Collection[str],
) -> None:
    for task_id in task_ids:
        await wait_task(manager, task_id)


def _timed_out(manager: "api.Manager", task_id: str) -> errors.TaskTimeoutError:
    manager.log.warning(f"Waiting for the task {task_id} took more than {configuration.TASK_TIMEOUT}s.")
    return errors.TaskTimeoutError(f"Task {task_id} timeout",
                                   task_id=task_id, timeout=configuration.TASK_TIMEOUT)

"""
Connectors for session input sources and output targets.

A session never talks to a data system directly: it asks a ConnectorFactory
for an InputConnector bound to its DataInputSource and an OutputConnector
bound to its DataOutputTarget. Built-in connectors cover in-memory queues,
JSON Lines files and HTTP endpoints; other source types (database, stream)
are supplied by the embedding application through ConnectorFactory.register_*.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from collections import deque
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

import aiofiles
import aiofiles.os
import httpx

from anonyflow.errors import SinkFailure, SourceUnavailable
from anonyflow.execution.models import DataInputSource, DataOutputTarget
from anonyflow.logging.setup import get_logger

logger = get_logger(__name__)

Record = dict[str, Any]


class InputConnector(ABC):
    """Reads batches of records from an input source."""

    @abstractmethod
    async def validate(self) -> bool:
        """Check that the source is reachable. Never raises."""

    @abstractmethod
    async def fetch_batch(self) -> list[Record]:
        """Fetch the next batch of records; an empty list means no new data."""

    async def close(self) -> None:
        """Release any resources held by the connector."""


class OutputConnector(ABC):
    """Delivers batches of anonymized records to an output target."""

    @abstractmethod
    async def send(self, records: list[Record]) -> None:
        """Deliver records. Raises on failure."""

    async def close(self) -> None:
        """Release any resources held by the connector."""


class MemoryInputConnector(InputConnector):
    """Input connector fed from an in-process queue of batches.

    Example:
        >>> source = MemoryInputConnector()
        >>> source.push([{"email": "a@b.com"}])
    """

    def __init__(self, batches: Optional[Iterable[list[Record]]] = None, available: bool = True):
        self._batches: deque[list[Record]] = deque(batches or [])
        self.available = available

    def push(self, batch: list[Record]) -> None:
        self._batches.append(list(batch))

    @property
    def pending(self) -> int:
        return len(self._batches)

    async def validate(self) -> bool:
        return self.available

    async def fetch_batch(self) -> list[Record]:
        if not self._batches:
            return []
        return self._batches.popleft()


class MemoryOutputConnector(OutputConnector):
    """Output connector that keeps every delivered batch in memory."""

    def __init__(self):
        self.batches: list[list[Record]] = []

    @property
    def records(self) -> list[Record]:
        return [record for batch in self.batches for record in batch]

    async def send(self, records: list[Record]) -> None:
        self.batches.append(list(records))


class FileInputConnector(InputConnector):
    """Reads JSON Lines from a file, resuming where the previous poll stopped.

    Only newline-terminated lines are consumed, so a line still being
    written by a producer is picked up on a later poll. Blank lines are
    skipped.
    """

    def __init__(self, path: Union[str, Path], batch_size: int = 100):
        self.path = Path(path)
        self.batch_size = batch_size
        self._offset = 0

    @property
    def offset(self) -> int:
        """Byte offset of the next unread line."""
        return self._offset

    async def validate(self) -> bool:
        return await aiofiles.os.path.isfile(self.path)

    async def fetch_batch(self) -> list[Record]:
        records: list[Record] = []
        offset = self._offset
        async with aiofiles.open(self.path, mode="rb") as f:
            await f.seek(offset)
            while len(records) < self.batch_size:
                line = await f.readline()
                if not line or not line.endswith(b"\n"):
                    break
                offset += len(line)
                text = line.decode("utf-8").strip()
                if not text:
                    continue
                record = json.loads(text)
                if not isinstance(record, dict):
                    raise ValueError(f"Expected a JSON object per line in {self.path}")
                records.append(record)
        self._offset = offset
        return records


class FileOutputConnector(OutputConnector):
    """Appends records to a JSON Lines file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def send(self, records: list[Record]) -> None:
        if not records:
            return
        async with self._lock:
            async with aiofiles.open(self.path, mode="a", encoding="utf-8") as f:
                for record in records:
                    await f.write(json.dumps(record, ensure_ascii=False) + "\n")


def _records_from_payload(payload: Any) -> list[Record]:
    if isinstance(payload, dict) and isinstance(payload.get("records"), list):
        payload = payload["records"]
    if not isinstance(payload, list):
        raise ValueError("Expected a JSON array of records")
    return [record for record in payload if isinstance(record, dict)]


class HttpInputConnector(InputConnector):
    """Polls an HTTP endpoint that answers GET with a JSON array of records.

    A JSON object with a "records" array is accepted as well.
    """

    def __init__(
        self,
        endpoint: str,
        headers: Optional[dict[str, str]] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint
        self.headers = dict(headers or {})
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def validate(self) -> bool:
        if not self.endpoint:
            return False
        try:
            response = await self._client.get(self.endpoint, headers=self.headers)
        except httpx.RequestError as e:
            logger.warning(
                "Input endpoint %s unreachable: %s",
                self.endpoint,
                e,
                extra={"event": "source_unreachable"},
            )
            return False
        return response.is_success

    async def fetch_batch(self) -> list[Record]:
        response = await self._client.get(self.endpoint, headers=self.headers)
        response.raise_for_status()
        return _records_from_payload(response.json())

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class HttpOutputConnector(OutputConnector):
    """POSTs each batch to an HTTP endpoint as a JSON array."""

    def __init__(
        self,
        endpoint: str,
        headers: Optional[dict[str, str]] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint
        self.headers = dict(headers or {})
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def send(self, records: list[Record]) -> None:
        response = await self._client.post(self.endpoint, json=records, headers=self.headers)
        response.raise_for_status()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


InputBuilder = Callable[[DataInputSource], InputConnector]
OutputBuilder = Callable[[DataOutputTarget], OutputConnector]


class ConnectorFactory:
    """Builds connectors for sources and targets by their type.

    The api and file types are built in. Anything else must be registered
    before a session using it is started.

    Args:
        file_batch_size: Records read per poll from files that do not set
            their own batch_size.
        http_timeout: Timeout in seconds for HTTP connectors.
    """

    def __init__(self, file_batch_size: int = 100, http_timeout: float = 30.0):
        self.file_batch_size = file_batch_size
        self.http_timeout = http_timeout
        self._inputs: dict[str, InputBuilder] = {
            "api": self._build_http_input,
            "file": self._build_file_input,
        }
        self._outputs: dict[str, OutputBuilder] = {
            "api": self._build_http_output,
            "file": self._build_file_output,
        }

    def register_input(self, source_type: str, builder: InputBuilder) -> None:
        self._inputs[source_type] = builder

    def register_output(self, target_type: str, builder: OutputBuilder) -> None:
        self._outputs[target_type] = builder

    def create_input(self, source: DataInputSource) -> InputConnector:
        """Build the input connector for a source.

        Raises:
            SourceUnavailable: If no connector is registered for the type
                or the configuration is incomplete.
        """
        builder = self._inputs.get(source.type)
        if builder is None:
            raise SourceUnavailable(f"No input connector registered for type '{source.type}'")
        return builder(source)

    def create_output(self, target: DataOutputTarget) -> OutputConnector:
        """Build the output connector for a target.

        Raises:
            SinkFailure: If no connector is registered for the type or the
                configuration is incomplete.
        """
        builder = self._outputs.get(target.type)
        if builder is None:
            raise SinkFailure(f"No output connector registered for type '{target.type}'")
        return builder(target)

    def _build_http_input(self, source: DataInputSource) -> InputConnector:
        config = source.configuration
        if not config.endpoint:
            raise SourceUnavailable(f"Source '{source.name}' has no endpoint")
        return HttpInputConnector(config.endpoint, config.headers, timeout=self.http_timeout)

    def _build_file_input(self, source: DataInputSource) -> InputConnector:
        config = source.configuration
        if not config.file_path:
            raise SourceUnavailable(f"Source '{source.name}' has no file_path")
        return FileInputConnector(config.file_path, config.batch_size or self.file_batch_size)

    def _build_http_output(self, target: DataOutputTarget) -> OutputConnector:
        config = target.configuration
        if not config.endpoint:
            raise SinkFailure(f"Target '{target.name}' has no endpoint")
        return HttpOutputConnector(config.endpoint, config.headers, timeout=self.http_timeout)

    def _build_file_output(self, target: DataOutputTarget) -> OutputConnector:
        config = target.configuration
        if not config.file_path:
            raise SinkFailure(f"Target '{target.name}' has no file_path")
        return FileOutputConnector(config.file_path)

"""Board GraphQL client: document source and field sink for queue jobs.

Thin wrapper over the board API. Connection resets and timeouts are
retried with a fixed backoff; GraphQL-level errors are not.
"""

import json
import os
import threading
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

import requests

from src.exceptions import SinkUpdateFailure
from src.extraction.fields import InvoiceFields
from src.utils.config import MondayConfig
from src.utils.logger import get_logger
from src.utils.retry import call_with_retries

logger = get_logger(__name__)

_ITEM_FILES_QUERY = """
query ($itemId: [ID!], $columnIds: [String!]) {
  items(ids: $itemId) {
    id
    name
    column_values(ids: $columnIds) {
      id
      value
      text
    }
  }
}
"""

_ASSET_QUERY = """
query ($assetIds: [ID!]!) {
  assets(ids: $assetIds) {
    id
    public_url
  }
}
"""

_UPDATE_MUTATION = """
mutation ($boardId: ID!, $itemId: ID!, $columnValues: JSON!) {
  change_multiple_column_values(
    board_id: $boardId,
    item_id: $itemId,
    column_values: $columnValues
  ) {
    id
  }
}
"""

_BOARD_ITEMS_QUERY = """
query ($boardId: [ID!], $statusColumn: [String!]) {
  boards(ids: $boardId) {
    items_page {
      items {
        id
        name
        column_values(ids: $statusColumn) {
          id
          text
        }
      }
    }
  }
}
"""


@dataclass(frozen=True)
class RemoteFile:
    """A file attached to a board item.

    Attributes:
        name: Original file name, used for format detection.
        locator: Download URL, or a numeric asset id to resolve first.
    """

    name: str
    locator: str | int


class MondayClient:
    """GraphQL client for reading item files and writing extracted fields.

    Args:
        config: Board API configuration.
        session: HTTP session, created when omitted.
    """

    def __init__(
        self,
        config: MondayConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config or MondayConfig()
        self.api_token = self.config.api_token or os.environ.get("MONDAY_API_TOKEN")
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": self.api_token or "",
                "Content-Type": "application/json",
                "API-Version": self.config.api_version,
            }
        )
        self._asset_cache: dict[str, tuple[str, float]] = {}
        self._cache_lock = threading.Lock()

    def execute_query(self, query: str, variables: dict | None = None) -> dict:
        """Run a GraphQL query or mutation.

        Raises:
            SinkUpdateFailure: If the API answers with GraphQL errors or a
                non-success HTTP status.
            TransientNetworkFailure: If the connection keeps failing.
        """

        def post() -> requests.Response:
            return self.session.post(
                self.config.api_url,
                json={"query": query, "variables": variables or {}},
                timeout=self.config.timeout_s,
            )

        response = call_with_retries(
            post,
            retries=self.config.retries,
            delay=self.config.retry_delay_s,
            description="Board API request",
        )
        try:
            response.raise_for_status()
            payload = response.json()
        except (requests.HTTPError, ValueError) as exc:
            raise SinkUpdateFailure(f"Board API request failed: {exc}") from exc

        if payload.get("errors"):
            raise SinkUpdateFailure(json.dumps(payload["errors"]))
        return payload.get("data") or {}

    def fetch_files(self, item_id: str) -> list[RemoteFile]:
        """List the files attached to an item's file column."""
        data = self.execute_query(
            _ITEM_FILES_QUERY,
            {"itemId": [str(item_id)], "columnIds": [self.config.file_column]},
        )

        items = data.get("items") or []
        if not items:
            return []

        column = next(
            (
                c
                for c in items[0].get("column_values", [])
                if c.get("id") == self.config.file_column
            ),
            None,
        )
        if not column or not column.get("value"):
            return []

        try:
            file_data = json.loads(column["value"])
        except (TypeError, ValueError):
            logger.error("Error parsing file column value: %s", column["value"])
            return []

        if isinstance(file_data, dict):
            entries = file_data.get("files") or file_data.get("file") or []
        else:
            entries = file_data or []
        if not isinstance(entries, list):
            entries = [entries]

        files = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            locator = entry.get("url") or entry.get("assetId") or entry.get("publicUrl")
            if locator:
                name = entry.get("name") or entry.get("fileName") or "unknown"
                files.append(RemoteFile(name=name, locator=locator))
        return files

    def get_asset_url(self, asset_id: str | int) -> str:
        """Resolve an asset id to a public URL, cached for the configured TTL."""
        key = str(asset_id)
        now = time.monotonic()
        with self._cache_lock:
            cached = self._asset_cache.get(key)
        if cached and now - cached[1] < self.config.asset_cache_ttl_s:
            return cached[0]

        data = self.execute_query(_ASSET_QUERY, {"assetIds": [key]})
        assets = data.get("assets") or []
        if not assets or not assets[0].get("public_url"):
            raise SinkUpdateFailure(f"Asset {asset_id} not found")

        url = assets[0]["public_url"]
        with self._cache_lock:
            self._asset_cache[key] = (url, now)
        return url

    def download(self, remote_file: RemoteFile, target_dir: Path) -> Path:
        """Download a file into ``target_dir`` and return its local path."""
        url = remote_file.locator
        if isinstance(url, int) or str(url).isdigit():
            url = self.get_asset_url(url)
        url = str(url)

        headers = {"User-Agent": "Mozilla/5.0"}
        # Pre-signed S3 URLs reject extra auth.
        if "amazonaws.com" not in url and "X-Amz-Signature" not in url:
            headers["Authorization"] = self.api_token or ""

        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / f"{uuid.uuid4().hex[:12]}-{Path(remote_file.name).name}"

        def fetch() -> requests.Response:
            return requests.get(
                url, headers=headers, stream=True, timeout=self.config.timeout_s
            )

        response = call_with_retries(
            fetch,
            retries=self.config.retries,
            delay=self.config.retry_delay_s,
            description=f"Download of {remote_file.name}",
        )
        with response:
            response.raise_for_status()
            try:
                with open(target, "wb") as f:
                    for chunk in response.iter_content(chunk_size=64 * 1024):
                        f.write(chunk)
            except BaseException:
                target.unlink(missing_ok=True)
                logger.error("Download of %s interrupted, partial file removed", remote_file.name)
                raise

        logger.info(
            "Downloaded: %s (%.1fKB)", remote_file.name, target.stat().st_size / 1024
        )
        return target

    def map_fields(self, fields: InvoiceFields) -> dict[str, object]:
        """Map present field values to their configured column ids."""
        values = fields.to_dict()
        columns: dict[str, object] = {}
        for field_name, column_id in self.config.column_map.items():
            value = values.get(field_name)
            if value is None or value == "":
                continue
            columns[column_id] = float(value) if field_name == "total_value" else value
        return columns

    def apply_fields(self, destination_ref: str, item_id: str, fields: InvoiceFields) -> None:
        """Write extracted fields to an item on a board.

        Raises:
            SinkUpdateFailure: If the board rejects the update.
            TransientNetworkFailure: If the API stays unreachable.
        """
        self.execute_query(
            _UPDATE_MUTATION,
            {
                "boardId": str(destination_ref),
                "itemId": str(item_id),
                "columnValues": json.dumps(self.map_fields(fields)),
            },
        )
        logger.info("Board item %s updated", item_id)

    def get_done_items(self, board_id: str) -> list[str]:
        """Return ids of the board's items whose status is the done label."""
        data = self.execute_query(
            _BOARD_ITEMS_QUERY,
            {"boardId": [str(board_id)], "statusColumn": [self.config.status_column]},
        )
        boards = data.get("boards") or []
        if not boards:
            return []

        items = boards[0].get("items_page", {}).get("items", [])
        done = [
            item["id"]
            for item in items
            if any(
                c.get("id") == self.config.status_column
                and c.get("text") == self.config.done_label
                for c in item.get("column_values", [])
            )
        ]
        logger.info(
            'Found %d items with status "%s" out of %d total items',
            len(done),
            self.config.done_label,
            len(items),
        )
        return done

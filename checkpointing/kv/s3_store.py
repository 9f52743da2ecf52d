"""
S3-based ordered key-value store using one-object-per-key pattern.

Each key is stored as a separate S3 object: {prefix}/{hex(key)}
Body: raw value bytes

Hex encoding preserves byte order, and S3 lists keys in UTF-8 binary order,
so list_objects_v2 returns keys in store order.
"""

import os
from typing import Iterator, List, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..core.errors import StoreError
from .store import KVPair, KVStore, in_range

_MISSING_CODES = ("NoSuchKey", "404", "NotFound")
# Precondition failed, or a concurrent conditional write won the race
_CONFLICT_CODES = ("PreconditionFailed", "412", "ConditionalRequestConflict", "409", "NoSuchKey")


class S3KVStore(KVStore):
    """
    S3-backed key-value store.

    Guarantees:
    - Atomic single-key writes (S3 PUT replaces the whole object)
    - Ordered listing (lexicographic key order = byte order of store keys)
    - Strong read-after-write consistency (AWS S3 as of Dec 2020)

    lock() is process-local. Cross-process safety comes from
    compare_and_set(), which uses S3 conditional writes (IfNoneMatch /
    IfMatch) so a competing writer on the same prefix is detected, not
    overwritten.

    Paginator: list_objects_v2 returns max 1000 keys per call, so listings
    always go through the paginator.
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "checkpoints",
        endpoint_url: Optional[str] = None,
        region: str = "us-east-1",
    ) -> None:
        """
        Initialize S3 store.

        Args:
            bucket: S3 bucket name
            prefix: Key prefix for objects (default: "checkpoints")
            endpoint_url: S3 endpoint URL (for MinIO, localstack, etc.)
            region: AWS region (default: us-east-1)

        Raises:
            StoreError: If S3 client creation fails or bucket is not accessible
        """
        super().__init__()
        self.bucket = bucket
        self.prefix = prefix.rstrip("/")
        self.endpoint_url = endpoint_url
        self.region = region

        # Credentials from environment: AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY
        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                region_name=region,
            )
        except (BotoCoreError, ValueError) as e:
            raise StoreError(f"Failed to create S3 client: {e}") from e

        if os.getenv("CKPT_S3_SKIP_BUCKET_CHECK", "").lower() != "true":
            try:
                self.s3_client.head_bucket(Bucket=bucket)
            except ClientError as e:
                error_code = e.response.get("Error", {}).get("Code", "Unknown")
                raise StoreError(
                    f"Bucket '{bucket}' not accessible (code: {error_code})"
                ) from e
            except BotoCoreError as e:
                raise StoreError(f"Bucket '{bucket}' not accessible: {e}") from e

    def _object_key(self, key: bytes) -> str:
        return f"{self.prefix}/{bytes(key).hex()}"

    def _key_from_object(self, object_key: str) -> Optional[bytes]:
        if not object_key.startswith(self.prefix + "/"):
            return None
        name = object_key[len(self.prefix) + 1 :]
        try:
            return bytes.fromhex(name)
        except ValueError:
            return None

    def get(self, key: bytes) -> Optional[bytes]:
        current = self._get_with_etag(self._object_key(key))
        return None if current is None else current[0]

    def set(self, key: bytes, value: bytes) -> None:
        self._put_object(self._object_key(key), value)

    def _put_object(self, object_key: str, value: bytes, **conditions: str) -> bool:
        """
        PUT one object, optionally guarded by IfNoneMatch/IfMatch.

        Returns:
            True if written, False if a precondition failed
        """
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=object_key,
                Body=value,
                ContentType="application/json",
                **conditions,
            )
            return True
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if conditions and code in _CONFLICT_CODES:
                return False
            raise StoreError(f"Failed to write {object_key} to S3: {e}") from e
        except BotoCoreError as e:
            raise StoreError(f"Failed to write {object_key} to S3: {e}") from e

    def _get_with_etag(self, object_key: str) -> Optional[Tuple[bytes, str]]:
        try:
            response = self.s3_client.get_object(Bucket=self.bucket, Key=object_key)
            return response["Body"].read(), response["ETag"]
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in _MISSING_CODES:
                return None
            raise StoreError(f"Failed to read {object_key} from S3: {e}") from e
        except BotoCoreError as e:
            raise StoreError(f"Failed to read {object_key} from S3: {e}") from e

    def compare_and_set(self, key: bytes, expected: Optional[bytes], value: bytes) -> bool:
        """
        Conditional write enforced by S3 itself, so it holds across processes.

        expected=None writes with IfNoneMatch="*" (create-only). Otherwise the
        current object is read and, if its body equals expected, rewritten
        with IfMatch on the ETag that was read. A writer landing in between
        makes S3 reject the PUT.
        """
        object_key = self._object_key(key)
        if expected is None:
            return self._put_object(object_key, value, IfNoneMatch="*")

        current = self._get_with_etag(object_key)
        if current is None:
            return False
        body, etag = current
        if body != expected:
            return False
        return self._put_object(object_key, value, IfMatch=etag)

    def _list_keys(self, start: Optional[bytes], end: Optional[bytes]) -> List[Tuple[bytes, str]]:
        paginate_args = {"Bucket": self.bucket, "Prefix": self.prefix + "/"}
        if start:
            # StartAfter is exclusive; step back to the lowest name sorting before start.
            paginate_args["StartAfter"] = self._object_key(start)[:-1]

        keys = []
        try:
            paginator = self.s3_client.get_paginator("list_objects_v2")
            for page in paginator.paginate(**paginate_args):
                for obj in page.get("Contents", []):
                    key = self._key_from_object(obj["Key"])
                    if key is None:
                        continue
                    if end is not None and key >= end:
                        return sorted(keys)
                    if in_range(key, start, end):
                        keys.append((key, obj["Key"]))
        except (BotoCoreError, ClientError) as e:
            raise StoreError(f"Failed to list objects in S3: {e}") from e

        # Paranoia: S3 lex order should already be sorted
        return sorted(keys)

    def iterator(
        self,
        start: Optional[bytes] = None,
        end: Optional[bytes] = None,
        reverse: bool = False,
    ) -> Iterator[KVPair]:
        keys = self._list_keys(start, end)
        if reverse:
            keys.reverse()
        return self._iter_values(keys)

    def _iter_values(self, keys: List[Tuple[bytes, str]]) -> Iterator[KVPair]:
        for key, _object_key in keys:
            value = self.get(key)
            if value is None:
                continue
            yield key, value

"""
An S3KeyStore object that does the few bucket operations keyvfs needs:
put an empty object, list keys under a prefix page by page and delete a batch of keys.

This class is a wrapper around the boto3 S3 client.
Errors from boto3/botocore are re-raised as TransferError so callers only have to deal with one exception type.
"""

import logging
import os
from typing import Iterator

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from keyvfs.exceptions import CredentialsNotFoundError, TransferError

logger = logging.getLogger(__name__)

# S3 returns at most 1000 keys per list page, and accepts at most 1000 keys per DeleteObjects call.
MAX_PAGE_SIZE = 1000


class S3KeyStore:
    """An S3 client wrapper where all of an object's data is carried in its key."""

    def __init__(
        self,
        url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        max_pool_connections: int = 10,
    ):
        # access_key/secret_key of None lets boto3 use its default credential chain.
        self.s3_client = boto3.client(
            "s3",
            endpoint_url=url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            config=Config(
                retries={
                    "max_attempts": 5,
                    "mode": "adaptive",
                },
                max_pool_connections=max_pool_connections,
            ),
        )

    def put_empty_object(self, bucket_name: str, key: str) -> str:
        """
        Create an object with an empty body at 'key'.
        Returns the key.
        """
        try:
            self.s3_client.put_object(Bucket=bucket_name, Key=key, Body=b"")
        except (ClientError, BotoCoreError) as err:
            raise TransferError(operation="PutObject", bucket_name=bucket_name, details=str(err)) from err
        return key

    def iter_key_pages(self, bucket_name: str, prefix: str, page_size: int = MAX_PAGE_SIZE) -> Iterator[list[str]]:
        """
        Yield the keys under 'prefix', one list per page of the listing.
        Empty pages are skipped.
        """
        paginator = self.s3_client.get_paginator("list_objects_v2")
        pages = paginator.paginate(
            Bucket=bucket_name,
            Prefix=prefix,
            PaginationConfig={"PageSize": page_size},
        )
        try:
            for page in pages:
                keys = [obj["Key"] for obj in page.get("Contents", [])]
                if keys:
                    yield keys
        except (ClientError, BotoCoreError) as err:
            raise TransferError(operation="ListObjectsV2", bucket_name=bucket_name, details=str(err)) from err

    def list_keys(self, bucket_name: str, prefix: str, page_size: int = MAX_PAGE_SIZE) -> list[str]:
        """
        Return a list of all keys under 'prefix', paging through the whole listing.
        """
        keys = []
        for page in self.iter_key_pages(bucket_name=bucket_name, prefix=prefix, page_size=page_size):
            keys.extend(page)
        return keys

    def delete_keys(self, bucket_name: str, keys: list[str]) -> list[str]:
        """
        Delete a batch of (at most 1000) keys, returns a list of the deleted keys.

        S3 reports per key failures in the response instead of raising,
        if there are any the batch is treated as failed.

        NOTE: A key that did not exist is still reported as deleted by S3.
        """
        if len(keys) > MAX_PAGE_SIZE:
            raise ValueError(f"At most {MAX_PAGE_SIZE} keys can be deleted in one batch, got {len(keys)}.")

        delete_dict = {"Objects": [{"Key": key} for key in keys], "Quiet": False}
        try:
            response = self.s3_client.delete_objects(Bucket=bucket_name, Delete=delete_dict)
        except (ClientError, BotoCoreError) as err:
            raise TransferError(operation="DeleteObjects", bucket_name=bucket_name, details=str(err)) from err

        deleted_keys = [object_dict["Key"] for object_dict in response.get("Deleted", [])]

        errors = response.get("Errors", [])
        if errors:
            for error in errors:
                logger.error(f"Failed to delete '{error['Key']}': {error.get('Code')} - {error.get('Message')}")
            raise TransferError(
                operation="DeleteObjects",
                bucket_name=bucket_name,
                details=f"{len(errors)} of {len(keys)} key(s) could not be deleted, first was '{errors[0]['Key']}'.",
            )
        return deleted_keys


def create_s3_key_store(
    url: str | None = None,
    max_pool_connections: int = 10,
    s3_env_access_key_name: str = "KEYVFS_S3_ACCESS_KEY",
    s3_env_secret_key_name: str = "KEYVFS_S3_SECRET_KEY",
) -> S3KeyStore:
    """
    Creates an S3KeyStore instance using credentials from environment variables if they are set,
    otherwise boto3 falls back to its default credential chain (AWS_* env variables, ~/.aws, instance roles...).
    """
    access_key = os.getenv(s3_env_access_key_name)
    secret_key = os.getenv(s3_env_secret_key_name)

    if bool(access_key) != bool(secret_key):
        raise CredentialsNotFoundError(access_key_name=s3_env_access_key_name, secret_key_name=s3_env_secret_key_name)

    return S3KeyStore(
        url=url,
        access_key=access_key or None,
        secret_key=secret_key or None,
        max_pool_connections=max_pool_connections,
    )

"""Object storage (S3) and e-mail subscription (SNS) clients."""
import logging
import re
import time
from functools import lru_cache
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

import config

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


class StorageError(RuntimeError):
    pass


def sanitize_filename(filename: str) -> str:
    return _UNSAFE_CHARS.sub("_", filename)


def build_key(folder: str, filename: str) -> str:
    folder = folder.strip("/") or "images"
    return f"{folder}/{int(time.time() * 1000)}-{sanitize_filename(filename)}"


class S3Storage:
    def __init__(self, bucket: str = config.AWS_S3_BUCKET, region: str = config.AWS_REGION, client=None):
        self.bucket = bucket
        self.region = region
        self.client = client or boto3.client("s3", region_name=region)

    def public_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def upload(self, data: bytes, content_type: str, folder: str = "products", filename: str = "upload") -> dict:
        key = build_key(folder, filename)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                ACL="public-read",
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Upload of {key} failed") from exc
        logger.info("Uploaded %s (%d bytes)", key, len(data))
        return {"key": key, "url": self.public_url(key), "size": len(data), "mimetype": content_type}

    def delete(self, key: str):
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Delete of {key} failed") from exc

    def presign(self, key: str, operation: str = "put", expires_in: int = config.PRESIGNED_URL_EXPIRES,
                content_type: Optional[str] = None) -> str:
        method = "put_object" if operation == "put" else "get_object"
        params = {"Bucket": self.bucket, "Key": key}
        if content_type and operation == "put":
            params["ContentType"] = content_type
        try:
            return self.client.generate_presigned_url(method, Params=params, ExpiresIn=expires_in)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Presign of {key} failed") from exc


class EmailSubscriber:
    def __init__(self, topic_arn: Optional[str] = config.AWS_SNS_TOPIC_ARN, region: str = config.AWS_REGION,
                 client=None):
        self.topic_arn = topic_arn
        self.client = client or boto3.client("sns", region_name=region)

    def subscribe(self, email: str):
        if not self.topic_arn:
            raise StorageError("SNS topic ARN not configured")
        try:
            self.client.subscribe(TopicArn=self.topic_arn, Protocol="email", Endpoint=email)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError("Subscription request failed") from exc


@lru_cache
def get_storage() -> S3Storage:
    return S3Storage()


@lru_cache
def get_subscriber() -> EmailSubscriber:
    return EmailSubscriber()

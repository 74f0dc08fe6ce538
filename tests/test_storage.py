import boto3
import pytest
from botocore.stub import ANY, Stubber

from storage import EmailSubscriber, S3Storage, StorageError, build_key, sanitize_filename


def make_client(service):
    return boto3.client(
        service, region_name="us-east-1", aws_access_key_id="testing", aws_secret_access_key="testing"
    )


def test_sanitize_filename():
    assert sanitize_filename("my photo (1).png") == "my_photo__1_.png"


def test_build_key():
    key = build_key("/stores/", "a b.jpg")
    folder, name = key.split("/")
    assert folder == "stores"
    assert name.endswith("-a_b.jpg")
    assert name.split("-")[0].isdigit()


def test_upload_puts_public_object():
    client = make_client("s3")
    storage = S3Storage(bucket="bucket", region="us-east-1", client=client)
    with Stubber(client) as stub:
        stub.add_response(
            "put_object",
            {},
            {"Bucket": "bucket", "Key": ANY, "Body": b"data", "ContentType": "image/png", "ACL": "public-read"},
        )
        result = storage.upload(b"data", "image/png", folder="products", filename="x.png")
    assert result["url"] == f"https://bucket.s3.us-east-1.amazonaws.com/{result['key']}"
    assert result["size"] == 4


def test_upload_error_is_wrapped():
    client = make_client("s3")
    storage = S3Storage(bucket="bucket", region="us-east-1", client=client)
    with Stubber(client) as stub:
        stub.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
        with pytest.raises(StorageError):
            storage.upload(b"data", "image/png")


def test_presign_put():
    storage = S3Storage(bucket="bucket", region="us-east-1", client=make_client("s3"))
    url = storage.presign("images/1-a.png", "put", 600, content_type="image/png")
    assert url.startswith("https://bucket.s3")
    assert "images/1-a.png" in url


def test_subscribe_requires_topic():
    subscriber = EmailSubscriber(topic_arn=None, region="us-east-1", client=make_client("sns"))
    with pytest.raises(StorageError):
        subscriber.subscribe("a@example.com")


def test_subscribe():
    client = make_client("sns")
    arn = "arn:aws:sns:us-east-1:123456789012:marketplace"
    subscriber = EmailSubscriber(topic_arn=arn, region="us-east-1", client=client)
    with Stubber(client) as stub:
        stub.add_response(
            "subscribe",
            {"SubscriptionArn": "pending confirmation"},
            {"TopicArn": arn, "Protocol": "email", "Endpoint": "a@example.com"},
        )
        subscriber.subscribe("a@example.com")
        stub.assert_no_pending_responses()

"""
Unit tests for S3 certification document storage.
"""

import re
from unittest.mock import Mock, patch

import pytest
from botocore.exceptions import ClientError

from src.safeguard.services.storage.document_storage import DocumentStorage


class TestDocumentStorage:

    @pytest.fixture
    def mock_boto_client(self):
        with patch('boto3.client') as mock_client:
            mock_client.return_value = Mock()
            yield mock_client

    @pytest.fixture
    def storage(self, mock_boto_client):
        return DocumentStorage(bucket_name="certs", region="us-west-2")

    def test_init(self, mock_boto_client):
        storage = DocumentStorage("certs")

        assert storage.bucket_name == "certs"
        assert storage.url_base == "https://certs.s3.us-east-1.amazonaws.com"
        mock_boto_client.assert_called_once_with('s3', region_name="us-east-1")

    def test_custom_url_base(self, mock_boto_client):
        storage = DocumentStorage("certs", url_base="https://files.example.com/")
        assert storage.url_for("org-a/x.pdf") == "https://files.example.com/org-a/x.pdf"

    def test_build_key_layout(self):
        key = DocumentStorage.build_key("org-a", "asset-1", "Cert.PDF")
        assert re.fullmatch(r"org-a/asset-1/\d+-[0-9a-f]{8}\.pdf", key)

        bulk_key = DocumentStorage.build_key("org-a", None, "README")
        assert re.fullmatch(r"org-a/bulk/\d+-[0-9a-f]{8}\.bin", bulk_key)

    def test_build_key_never_repeats(self):
        first = DocumentStorage.build_key("org-a", "asset-1", "cert.pdf")
        second = DocumentStorage.build_key("org-a", "asset-1", "cert.pdf")
        assert first != second

    def test_upload_certification(self, storage, mock_boto_client):
        s3 = mock_boto_client.return_value

        url = storage.upload_certification(
            b"%PDF", "cert.pdf", "org-a", "u1", asset_id="asset-1", content_type="application/pdf"
        )

        s3.put_object.assert_called_once()
        params = s3.put_object.call_args.kwargs
        assert params['Bucket'] == "certs"
        assert params['Key'].startswith("org-a/asset-1/")
        assert params['Body'] == b"%PDF"
        assert params['ContentType'] == "application/pdf"
        assert params['ServerSideEncryption'] == 'AES256'
        assert params['Metadata'] == {'org-id': 'org-a', 'uploaded-by': 'u1', 'asset-id': 'asset-1'}
        assert url == f"https://certs.s3.us-west-2.amazonaws.com/{params['Key']}"

    def test_bulk_upload_goes_under_bulk_prefix(self, storage, mock_boto_client):
        s3 = mock_boto_client.return_value

        storage.upload_certification(b"data", "cert.pdf", "org-a", "admin-1")

        params = s3.put_object.call_args.kwargs
        assert params['Key'].startswith("org-a/bulk/")
        assert params['Metadata']['asset-id'] == 'bulk'
        assert 'ContentType' not in params

    def test_upload_failure_propagates(self, storage, mock_boto_client):
        s3 = mock_boto_client.return_value
        s3.put_object.side_effect = ClientError(
            {'Error': {'Code': 'AccessDenied', 'Message': 'Access Denied'}},
            'PutObject'
        )

        with pytest.raises(ClientError):
            storage.upload_certification(b"data", "cert.pdf", "org-a", "u1", asset_id="asset-1")

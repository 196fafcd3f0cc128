import pytest

from storage_kit.storage.exceptions import ErrorCode, StorageError
from storage_kit.utils.validators import (
    is_mime_type_allowed,
    require_param,
    resolve_bucket,
    validate_keys_param,
    validate_signed_url_type,
)


class TestResolveBucket:
    """Default bucket placeholder resolution tests"""

    def test_placeholder_uses_default(self):
        """Test '_' resolves to the default bucket"""
        assert resolve_bucket("_", "uploads") == "uploads"

    def test_explicit_bucket_passes_through(self):
        """Test a named bucket is returned unchanged"""
        assert resolve_bucket("images", "uploads") == "images"
        assert resolve_bucket("images", None) == "images"

    def test_placeholder_without_default(self):
        """Test '_' without a default bucket"""
        with pytest.raises(StorageError) as exc:
            resolve_bucket("_", None)
        assert exc.value.code == ErrorCode.MISSING_REQUIRED_PARAM
        assert exc.value.details == {"parameter": "bucket"}


class TestMimeTypeAllowList:
    """MIME type allow-list tests"""

    def test_empty_list_allows_everything(self):
        """Test an empty allow-list"""
        assert is_mime_type_allowed("application/x-anything", [])

    def test_wildcard_matches_prefix(self):
        """Test 'image/*' matches image types only"""
        assert is_mime_type_allowed("image/png", ["image/*"])
        assert is_mime_type_allowed("image/svg+xml", ["image/*"])
        assert not is_mime_type_allowed("application/png", ["image/*"])

    def test_exact_entry(self):
        """Test entries without wildcard must match exactly"""
        assert is_mime_type_allowed("application/pdf", ["application/pdf"])
        assert not is_mime_type_allowed("application/pdfx", ["application/pdf"])

    def test_any_entry_may_match(self):
        """Test mixed allow-list"""
        allowed = ["image/*", "application/pdf"]
        assert is_mime_type_allowed("application/pdf", allowed)
        assert not is_mime_type_allowed("text/plain", allowed)


class TestKeysParam:
    """Bulk delete keys validation tests"""

    @pytest.mark.parametrize("keys", [None, "a.png", {"keys": []}])
    def test_missing_or_not_a_list(self, keys):
        """Test absent or non-list keys"""
        with pytest.raises(StorageError) as exc:
            validate_keys_param(keys)
        assert exc.value.code == ErrorCode.MISSING_REQUIRED_PARAM
        assert exc.value.details["parameter"] == "keys"

    def test_empty_list(self):
        """Test empty keys array"""
        with pytest.raises(StorageError) as exc:
            validate_keys_param([])
        assert exc.value.code == ErrorCode.EMPTY_KEYS_ARRAY

    def test_limit_is_inclusive(self):
        """Test exactly 1000 keys are accepted"""
        keys = [f"k{i}" for i in range(1000)]
        assert validate_keys_param(keys) == keys

    def test_limit_exceeded(self):
        """Test 1001 keys are rejected"""
        with pytest.raises(StorageError) as exc:
            validate_keys_param([f"k{i}" for i in range(1001)])
        assert exc.value.code == ErrorCode.KEYS_LIMIT_EXCEEDED
        assert exc.value.details == {"provided": 1001, "maximum": 1000}


class TestSignedUrlType:
    """Signed URL type validation tests"""

    @pytest.mark.parametrize("url_type", ["upload", "download"])
    def test_valid_types(self, url_type):
        """Test accepted types"""
        assert validate_signed_url_type(url_type) == url_type

    @pytest.mark.parametrize("url_type", [None, ""])
    def test_missing_type(self, url_type):
        """Test missing type"""
        with pytest.raises(StorageError) as exc:
            validate_signed_url_type(url_type)
        assert exc.value.code == ErrorCode.MISSING_REQUIRED_PARAM

    def test_invalid_type(self):
        """Test unknown type"""
        with pytest.raises(StorageError) as exc:
            validate_signed_url_type("delete")
        assert exc.value.code == ErrorCode.INVALID_SIGNED_URL_TYPE
        assert exc.value.details["provided"] == "delete"


def test_require_param_accepts_value():
    """Test a present parameter passes"""
    require_param("a.png", "key")


def test_require_param_rejects_empty():
    """Test an empty parameter names itself in details"""
    with pytest.raises(StorageError) as exc:
        require_param("", "key")
    assert exc.value.details == {"parameter": "key"}

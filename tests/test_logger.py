import logging

from core.logger import SecretMaskingFilter, mask_secrets


def test_masks_provider_keys():
    assert "sk-abcdefghijklmnop" not in mask_secrets("using key sk-abcdefghijklmnop")
    assert "AIzaSyA1234567890abcdefghij" not in mask_secrets("key=AIzaSyA1234567890abcdefghij")
    assert mask_secrets('"apiKey": "super-secret-value"') == '"apiKey": ***MASKED***'


def test_filter_masks_args():
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "token %s", ("Bearer " + "x" * 30,), None)
    SecretMaskingFilter().filter(record)
    assert "x" * 30 not in record.getMessage()

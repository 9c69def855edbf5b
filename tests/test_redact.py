from revssh.redact import redact_string


def test_redact_string():
    assert redact_string("secret123") == "[REDACTED]"
    assert redact_string("") == ""
from vibecoder.core.exceptions import _coerce_json_safe, _error_payload, _sanitize_validation_errors


def test_validation_errors_drop_user_input() -> None:
  errors = [
    {"type": "string_too_long", "loc": ("body", "prompt"), "msg": "String should have at most 8000 characters", "input": "secret prompt", "ctx": {"max_length": 8000, "input": "secret"}},
    {"type": "missing", "loc": ("body", "code"), "msg": "Field required", "input": {"prompt": "x"}},
  ]
  sanitized = _sanitize_validation_errors(errors)

  assert sanitized[0] == {"type": "string_too_long", "loc": ["body", "prompt"], "msg": "String should have at most 8000 characters", "ctx": {"max_length": 8000}}
  assert "input" not in sanitized[1]
  assert "secret" not in str(sanitized)


def test_error_payload_skips_missing_extras() -> None:
  assert _error_payload("Conflict", request_id="req-1", activeJobId=None) == {"detail": "Conflict", "requestId": "req-1"}
  assert _error_payload("Conflict", activeJobId="job-1") == {"detail": "Conflict", "activeJobId": "job-1"}


def test_coerce_json_safe_handles_exceptions_and_sets() -> None:
  assert _coerce_json_safe(ValueError("bad value")) == "ValueError: bad value"
  assert _coerce_json_safe(ValueError()) == "ValueError"
  assert _coerce_json_safe({1: {"a"}}) == {"1": ["a"]}

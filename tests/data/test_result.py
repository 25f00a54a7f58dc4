import sys

import pytest
from pydantic import ValidationError

from workspace_runner.data import (
    Diagnostic,
    Diagnostics,
    DiagnosticSeverity,
    ExecutionResult,
    ExecutionStatus,
    FeatureBag,
)


def test_succeeded_only_for_succeeded_status():
    assert ExecutionResult(status=ExecutionStatus.SUCCEEDED).succeeded
    for status in (ExecutionStatus.COMPILE_ERROR, ExecutionStatus.TIMEOUT):
        assert not ExecutionResult(status=status).succeeded
    assert not ExecutionResult(status=ExecutionStatus.RUNTIME_ERROR, exception="E").succeeded


def test_exception_required_for_runtime_error():
    with pytest.raises(ValidationError):
        ExecutionResult(status=ExecutionStatus.RUNTIME_ERROR)


@pytest.mark.parametrize(
    "status", [ExecutionStatus.SUCCEEDED, ExecutionStatus.COMPILE_ERROR, ExecutionStatus.TIMEOUT]
)
def test_exception_forbidden_otherwise(status):
    with pytest.raises(ValidationError):
        ExecutionResult(status=status, exception="Exception: oops!")


def test_output_is_tuple():
    result = ExecutionResult(status=ExecutionStatus.SUCCEEDED, output=["a", "b", ""])
    assert result.output == ("a", "b", "")


def test_immutable():
    result = ExecutionResult(status=ExecutionStatus.SUCCEEDED)
    with pytest.raises(ValidationError):
        result.status = ExecutionStatus.TIMEOUT


def test_to_dict_with_diagnostics():
    diag = Diagnostic(
        severity=DiagnosticSeverity.WARNING, line=2, column=1, message="dup", code="PY0105"
    )
    features = FeatureBag()
    features.set(Diagnostics.of([diag]))
    result = ExecutionResult(
        status=ExecutionStatus.RUNTIME_ERROR,
        output=["1"],
        exception="Exception: oops!",
        features=features.freeze(),
    )
    assert result.get_feature(Diagnostics)[0] == diag
    assert result.to_dict() == {
        "status": "RUNTIME_ERROR",
        "succeeded": False,
        "output": ["1"],
        "exception": "Exception: oops!",
        "diagnostics": ["main.py(2,1): warning PY0105: dup"],
    }


def test_to_dict_without_diagnostics():
    result = ExecutionResult(status=ExecutionStatus.SUCCEEDED, output=["hi", ""])
    assert result.get_feature(Diagnostics) is None
    assert "diagnostics" not in result.to_dict()


def test_str():
    result = ExecutionResult(
        status=ExecutionStatus.RUNTIME_ERROR, output=["1"], exception="Exception: oops!"
    )
    assert str(result) == "ExecutionResult(RUNTIME_ERROR)\n  | 1\n  ! Exception: oops!"


if __name__ == "__main__":
    pytest.main(sys.argv)

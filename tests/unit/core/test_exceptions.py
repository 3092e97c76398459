"""Tests for application errors."""

from analytics_store.core.exceptions import (
    AppError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


class TestAppError:
    """Tests for base AppError class."""

    def test_app_error_creation(self) -> None:
        error = AppError(title="Test Error", detail="This is a test error")

        assert error.title == "Test Error"
        assert error.detail == "This is a test error"
        assert error.error_type == "about:blank"
        assert str(error) == "This is a test error"

    def test_app_error_to_problem_detail(self) -> None:
        error = AppError(
            title="Test Error",
            detail="This is a test error",
            error_type="test-error",
            extra={"field": "value"},
        )

        problem = error.to_problem_detail()

        assert problem == {
            "type": "test-error",
            "title": "Test Error",
            "detail": "This is a test error",
            "field": "value",
        }


class TestNotFoundError:
    def test_default_detail(self) -> None:
        assert NotFoundError("Experiment").detail == "Experiment not found"

    def test_detail_with_id(self) -> None:
        error = NotFoundError("Session", resource_id="abc")

        assert error.detail == "Session with id 'abc' not found"
        assert error.to_problem_detail()["resource"] == "Session"

    def test_custom_detail(self) -> None:
        assert NotFoundError("Session", detail="gone").detail == "gone"


class TestValidationError:
    def test_errors_listed_in_problem_detail(self) -> None:
        error = ValidationError("bad input", errors=[{"field": "weight"}])

        problem = error.to_problem_detail()

        assert problem["title"] == "Validation Error"
        assert problem["errors"] == [{"field": "weight"}]

    def test_for_field(self) -> None:
        error = ValidationError.for_field("significance_level", "out of range", 0.5)

        assert "significance_level" in error.detail
        assert error.extra["errors"] == [
            {"field": "significance_level", "message": "out of range", "value": 0.5}
        ]


class TestConflictError:
    def test_is_app_error(self) -> None:
        error = ConflictError("duplicate")

        assert isinstance(error, AppError)
        assert error.error_type == "about:blank#conflict"

"""Tests for the core data models."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from entity_kernel.models import (
    ChatEntityError,
    EngineConfig,
    EntityType,
    ErrorContext,
    ErrorSeverity,
    ErrorType,
    GateState,
    Intent,
    OperationResult,
    ParsedEntityOperation,
    RecoveryAction,
    RecoveryMode,
)


def _make_operation(**overrides) -> ParsedEntityOperation:
    fields = dict(
        entity_type=EntityType.HABIT,
        intent=Intent.DELETE,
        parameters={"name": "Exercise"},
        original_message="delete habit called Exercise",
    )
    fields.update(overrides)
    return ParsedEntityOperation(**fields)


def _make_error(**overrides) -> ChatEntityError:
    fields = dict(
        type=ErrorType.NETWORK,
        severity=ErrorSeverity.MEDIUM,
        message="connection refused",
        user_friendly_message="I'm having trouble connecting.",
        code="NET_001",
        context=ErrorContext(timestamp=datetime.utcnow()),
    )
    fields.update(overrides)
    return ChatEntityError(**fields)


class TestParsedEntityOperation:
    def test_is_frozen(self):
        op = _make_operation()
        with pytest.raises(ValidationError):
            op.intent = Intent.VIEW

    def test_with_parameters_derives_new_operation(self):
        op = _make_operation()
        confirmed = op.with_parameters(confirmed=True)
        assert confirmed.is_confirmed
        assert confirmed.parameters["name"] == "Exercise"
        assert not op.is_confirmed
        assert "confirmed" not in op.parameters

    def test_targeting_binds_entity_id(self):
        op = _make_operation()
        bound = op.targeting("habit_abc")
        assert bound.entity_id == "habit_abc"
        assert op.entity_id is None

    def test_only_boolean_true_confirms(self):
        assert not _make_operation(parameters={"confirmed": "true"}).is_confirmed
        assert not _make_operation(parameters={"confirmed": 1}).is_confirmed
        assert _make_operation(parameters={"confirmed": True}).is_confirmed

    def test_confidence_bounded(self):
        with pytest.raises(ValidationError):
            _make_operation(confidence=1.5)


class TestOperationResult:
    def test_confirmation_requires_prompt(self):
        with pytest.raises(ValidationError):
            OperationResult(success=False, message="Sure?", needs_confirmation=True)

    def test_blank_prompt_rejected(self):
        with pytest.raises(ValidationError):
            OperationResult(
                success=False, message="Sure?", needs_confirmation=True, confirmation_prompt="  "
            )

    def test_confirmation_with_prompt(self):
        result = OperationResult(
            success=False,
            message="Sure?",
            needs_confirmation=True,
            confirmation_prompt='Type "yes" to confirm',
            state=GateState.NEEDS_CONFIRMATION,
        )
        assert result.needs_confirmation
        assert result.suggested_actions == []


class TestErrors:
    def test_severity_floor(self):
        assert ErrorSeverity.LOW.at_least(ErrorSeverity.HIGH) == ErrorSeverity.HIGH
        assert ErrorSeverity.CRITICAL.at_least(ErrorSeverity.HIGH) == ErrorSeverity.CRITICAL
        assert ErrorSeverity.MEDIUM.at_least(ErrorSeverity.MEDIUM) == ErrorSeverity.MEDIUM

    def test_user_friendly_message_never_blank(self):
        with pytest.raises(ValidationError):
            _make_error(user_friendly_message="   ")

    def test_retryable_when_automatic_recovery_offered(self):
        automatic = RecoveryAction(
            id="auto_retry", label="Retry", description="Retry soon",
            action_type=RecoveryMode.AUTOMATIC, handler="autoRetry", priority=1,
        )
        assert _make_error(recovery_actions=[automatic]).is_retryable
        assert not _make_error().is_retryable


class TestEngineConfig:
    def test_defaults(self):
        config = EngineConfig()
        assert config.similarity_threshold == 0.3
        assert config.max_alternatives == 3
        assert config.escalation_threshold == 3
        assert config.error_cooldown_seconds == 60

    def test_invalid_cron_rejected(self):
        with pytest.raises(ValidationError):
            EngineConfig(pattern_discovery_schedule="every six hours")

    def test_threshold_bounds(self):
        with pytest.raises(ValidationError):
            EngineConfig(similarity_threshold=1.5)

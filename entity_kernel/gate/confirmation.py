"""
Confirmation Gate: decides whether a validated operation may run now.

Behavioral Contract:
- Accepts a validated operation and the handler's target resolution
- Returns NeedsDisambiguation when several entities match and the operation
  is not already confirmed, listing exactly those candidates
- Returns NeedsConfirmation for unconfirmed deletes and for updates whose
  target was only found by loose token overlap
- Returns Ready otherwise, bound to the resolved entity id
- Never executes anything and never mutates the operation it is given
- Builds the single PendingOperation and interprets the user's reply to it
- A reply that is a command for another entity type or intent is never read
  as a selection or confirmation
"""

import re
from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel

from entity_kernel.errors.classifier import has_action_word
from entity_kernel.models.operation import (
    EntityCandidate,
    GateState,
    Intent,
    OperationResult,
    ParsedEntityOperation,
    PendingOperation,
)
from entity_kernel.models.pipeline import MatchTier, TargetResolution, TargetStatus


AFFIRMATIVE_PHRASES = {
    "yes", "y", "yeah", "yep", "yup", "sure", "ok", "okay", "confirm", "confirmed",
    "do it", "go ahead", "please do", "delete it", "yes please", "absolutely",
}
AFFIRMATIVE_LEADS = {"yes", "yeah", "yep", "yup", "sure", "ok", "okay", "confirm", "y"}
NEGATIVE_PHRASES = {
    "no", "n", "nope", "cancel", "stop", "never mind", "nevermind", "abort",
    "keep it", "don't", "dont", "no thanks", "forget it",
}
NEGATIVE_LEADS = {"no", "nope", "cancel", "stop", "abort", "don't", "dont", "nah"}
ORDINALS = {"first": 1, "second": 2, "third": 3, "fourth": 4, "fifth": 5, "last": -1}


class GateDecision(BaseModel):
    state: GateState
    operation: ParsedEntityOperation
    result: Optional[OperationResult] = None     # set for every non-Ready state
    options: List[EntityCandidate] = []
    target: Optional[EntityCandidate] = None


class ResponseKind(str, Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"
    SELECT = "select"
    REPROMPT = "reprompt"        # reply doesn't answer the question asked
    UNRELATED = "unrelated"      # treat as a new command


class PendingResponse(BaseModel):
    kind: ResponseKind
    selection: Optional[EntityCandidate] = None


def _normalize(text: str) -> str:
    return " ".join(re.sub(r"[^\w\s']", " ", text.lower()).split())


def _label(entity_type: str, plural: bool = False) -> str:
    if entity_type == "journal":
        return "journal entries" if plural else "journal entry"
    if entity_type == "mood":
        return "mood entries" if plural else "mood entry"
    if entity_type == "belief":
        return "belief programs" if plural else "belief program"
    if entity_type == "synchronicity":
        return "synchronicities" if plural else "synchronicity"
    return f"{entity_type}s" if plural else entity_type


def _is_other_command(command: ParsedEntityOperation, held: ParsedEntityOperation) -> bool:
    return command.entity_type != held.entity_type or command.intent != held.intent


class ConfirmationGate:
    """Stateless gate; the pending slot lives in the conversation session."""

    def evaluate(
        self, operation: ParsedEntityOperation, target: TargetResolution
    ) -> GateDecision:
        if target.status == TargetStatus.NOT_REQUIRED:
            return GateDecision(state=GateState.READY, operation=operation)

        if target.status == TargetStatus.MISSING_REFERENCE:
            return self._missing_reference(operation)

        if target.status == TargetStatus.NOT_FOUND:
            return self._not_found(operation, target)

        candidate = target.candidate
        if target.status == TargetStatus.AMBIGUOUS:
            if not operation.is_confirmed:
                return self._disambiguate(operation, target)
            candidate = target.options[0]

        bound = operation if operation.entity_id == candidate.id else operation.targeting(candidate.id)

        if operation.intent == Intent.DELETE and not operation.is_confirmed:
            return self._confirm_delete(bound, candidate, target.preview)

        if (
            operation.intent == Intent.UPDATE
            and target.tier == MatchTier.TOKEN
            and not operation.is_confirmed
        ):
            return self._confirm_uncertain(bound, candidate)

        return GateDecision(state=GateState.READY, operation=bound, target=candidate)

    def _missing_reference(self, operation: ParsedEntityOperation) -> GateDecision:
        entity = _label(operation.entity_type.value)
        intent = operation.intent.value
        result = OperationResult(
            success=False,
            message=f"Please specify which {entity} you want to {intent}",
            suggested_actions=[
                f"Provide the {entity} name",
                f'Use "{intent} {entity} called [name]"',
            ],
            state=GateState.REJECTED,
        )
        return GateDecision(state=GateState.REJECTED, operation=operation, result=result)

    def _not_found(self, operation: ParsedEntityOperation, target: TargetResolution) -> GateDecision:
        entity = _label(operation.entity_type.value)
        verb = operation.intent.value.capitalize()
        if target.query:
            message = f'Could not find a {entity} matching "{target.query}"'
        else:
            message = f"No {_label(operation.entity_type.value, plural=True)} found to {operation.intent.value}"

        if target.alternatives:
            suggested = [f'{verb} "{alt.name}" instead?' for alt in target.alternatives]
        else:
            suggested = [
                "Check the name and try again",
                f"View your {_label(operation.entity_type.value, plural=True)}",
            ]
        result = OperationResult(
            success=False,
            message=message,
            data={"alternatives": [alt.model_dump() for alt in target.alternatives]},
            suggested_actions=suggested,
            state=GateState.FAILED,
        )
        return GateDecision(
            state=GateState.FAILED, operation=operation, result=result, options=target.alternatives
        )

    def _disambiguate(self, operation: ParsedEntityOperation, target: TargetResolution) -> GateDecision:
        entity = _label(operation.entity_type.value, plural=True)
        verb = operation.intent.value.capitalize()
        listing = "\n".join(f"{i}. {o.name}" for i, o in enumerate(target.options, start=1))
        result = OperationResult(
            success=False,
            message=(
                f'Found multiple {entity} matching "{target.query}". '
                f"Which one did you mean?\n{listing}"
            ),
            data={"options": [o.model_dump() for o in target.options]},
            needs_confirmation=True,
            confirmation_prompt=f"Reply with the number or name of the {_label(operation.entity_type.value)} you meant:",
            suggested_actions=[f'{verb} "{o.name}"' for o in target.options],
            state=GateState.NEEDS_DISAMBIGUATION,
        )
        return GateDecision(
            state=GateState.NEEDS_DISAMBIGUATION,
            operation=operation,
            result=result,
            options=target.options,
        )

    def _confirm_delete(
        self,
        operation: ParsedEntityOperation,
        candidate: EntityCandidate,
        preview: Optional[str],
    ) -> GateDecision:
        message = f'Are you sure you want to delete "{candidate.name}"?'
        if preview:
            message += f"\n\n{preview}\n\n"
        else:
            message += " "
        message += "This action cannot be undone."
        result = OperationResult(
            success=False,
            message=message,
            data={"entity_id": candidate.id, "name": candidate.name},
            needs_confirmation=True,
            confirmation_prompt=f'Type "yes" to confirm deleting "{candidate.name}":',
            suggested_actions=[f'Delete "{candidate.name}"', "Cancel deletion"],
            state=GateState.NEEDS_CONFIRMATION,
        )
        return GateDecision(
            state=GateState.NEEDS_CONFIRMATION, operation=operation, result=result, target=candidate
        )

    def _confirm_uncertain(
        self, operation: ParsedEntityOperation, candidate: EntityCandidate
    ) -> GateDecision:
        result = OperationResult(
            success=False,
            message=f'I think you mean "{candidate.name}", but I\'m not certain.',
            data={"entity_id": candidate.id, "name": candidate.name},
            needs_confirmation=True,
            confirmation_prompt=f'Type "yes" to {operation.intent.value} "{candidate.name}":',
            suggested_actions=[f'Yes, update "{candidate.name}"', "Cancel"],
            state=GateState.NEEDS_CONFIRMATION,
        )
        return GateDecision(
            state=GateState.NEEDS_CONFIRMATION, operation=operation, result=result, target=candidate
        )

    # --- Pending slot ---

    def build_pending(
        self,
        decision: GateDecision,
        message: str,
        current_time: Optional[datetime] = None,
    ) -> PendingOperation:
        if decision.state not in (GateState.NEEDS_CONFIRMATION, GateState.NEEDS_DISAMBIGUATION):
            raise ValueError(f"Cannot hold an operation in state {decision.state.value}")
        return PendingOperation(
            id=f"pending_{uuid4().hex[:12]}",
            message=message,
            operation=decision.result,
            timestamp=current_time or datetime.utcnow(),
            parsed_operation=decision.operation,
            state=decision.state,
            options=decision.options,
        )

    def interpret_response(
        self,
        message: str,
        pending: PendingOperation,
        command: Optional[ParsedEntityOperation] = None,
    ) -> PendingResponse:
        """
        Read the next user message as an answer to the pending question.

        `command` is the message parsed as a fresh command, if it parses. A
        command for another entity type or intent is never an answer.
        """
        text = _normalize(message)
        if not text:
            return PendingResponse(kind=ResponseKind.REPROMPT)

        choosing = pending.state == GateState.NEEDS_DISAMBIGUATION and bool(pending.options)
        if choosing:
            exact = [o for o in pending.options if _normalize(o.name) == text]
            if len(exact) == 1:
                return PendingResponse(kind=ResponseKind.SELECT, selection=exact[0])

        if command is not None and _is_other_command(command, pending.parsed_operation):
            return PendingResponse(kind=ResponseKind.UNRELATED)

        if choosing and not has_action_word(text):
            selection = self._select(text, pending.options)
            if selection is not None:
                return PendingResponse(kind=ResponseKind.SELECT, selection=selection)

        first = text.split()[0]
        if text in NEGATIVE_PHRASES or first in NEGATIVE_LEADS:
            return PendingResponse(kind=ResponseKind.CANCEL)

        if text in AFFIRMATIVE_PHRASES or first in AFFIRMATIVE_LEADS:
            if (
                pending.state == GateState.NEEDS_DISAMBIGUATION
                and pending.parsed_operation.intent == Intent.DELETE
            ):
                # "yes" does not say which one to delete
                return PendingResponse(kind=ResponseKind.REPROMPT)
            return PendingResponse(kind=ResponseKind.CONFIRM)

        return PendingResponse(kind=ResponseKind.UNRELATED)

    def _select(self, text: str, options: List[EntityCandidate]) -> Optional[EntityCandidate]:
        number = re.fullmatch(r"(?:number\s+|option\s+|the\s+)?(\d+)(?:st|nd|rd|th)?(?:\s+one)?", text)
        if number:
            index = int(number.group(1))
            return options[index - 1] if 1 <= index <= len(options) else None

        for word, index in ORDINALS.items():
            if re.search(rf"\b{word}\b", text) and len(text.split()) <= 3:
                if index == -1:
                    return options[-1]
                return options[index - 1] if index <= len(options) else None

        names = [(o, _normalize(o.name)) for o in options]
        mentioned = [o for o, name in names if name and name in text]
        if len(mentioned) == 1:
            return mentioned[0]
        if len(text) >= 3:
            partial = [o for o, name in names if text in name]
            if len(partial) == 1:
                return partial[0]
        return None

    def resume(self, pending: PendingOperation, response: PendingResponse) -> ParsedEntityOperation:
        """The operation to execute next for a confirm or select reply."""
        if response.kind == ResponseKind.CONFIRM:
            return pending.parsed_operation.with_parameters(confirmed=True)
        if response.kind == ResponseKind.SELECT and response.selection is not None:
            return pending.parsed_operation.targeting(response.selection.id)
        raise ValueError(f"Cannot resume a pending operation on a {response.kind.value} reply")

    def cancelled_result(self, pending: PendingOperation) -> OperationResult:
        return OperationResult(
            success=True,
            message="Okay, I've cancelled that. Nothing was changed.",
            data={"cancelled_operation_id": pending.id},
            state=GateState.CANCELLED,
        )

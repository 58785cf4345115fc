from __future__ import annotations

"""Selector chains
------------------
Immutable description of a DOM query: an ordered tuple of tagged steps plus
a readable history. Nothing here touches the page; see resolver.py.
"""

import json
from dataclasses import dataclass
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


# ---------- Step models (discriminated union by 'name') ----------


class StepBase(BaseModel):
    model_config = ConfigDict(frozen=True)


class QueryAllStep(StepBase):
    name: Literal["querySelectorAllInPage"] = "querySelectorAllInPage"
    selector: str


class FindStep(StepBase):
    name: Literal["find"] = "find"
    selector: str


class WithTextStep(StepBase):
    name: Literal["withText"] = "withText"
    text: str


class WithValueStep(StepBase):
    name: Literal["withValue"] = "withValue"
    text: str


class NthStep(StepBase):
    name: Literal["nth"] = "nth"
    index: int = Field(..., description="1-based; -1 is the last element")


class ParentStep(StepBase):
    name: Literal["parent"] = "parent"


class UnknownStep(StepBase):
    """A step whose tag this version does not understand (kept so it fails at resolution)."""
    model_config = ConfigDict(frozen=True, extra="allow")
    name: str


KnownStep = Annotated[
    Union[QueryAllStep, FindStep, WithTextStep, WithValueStep, NthStep, ParentStep],
    Field(discriminator="name"),
]
ActionStep = Union[QueryAllStep, FindStep, WithTextStep, WithValueStep, NthStep, ParentStep, UnknownStep]

_known_step = TypeAdapter(KnownStep)
_KNOWN_NAMES = {"querySelectorAllInPage", "find", "withText", "withValue", "nth", "parent"}


def parse_step(data: dict) -> ActionStep:
    if data.get("name") in _KNOWN_NAMES:
        return _known_step.validate_python(data)
    return UnknownStep.model_validate(data)


# ---------- Chain ----------


@dataclass(frozen=True)
class SelectorChain:
    """Ordered steps + history. Every builder returns a new chain."""

    actions: tuple[ActionStep, ...]
    chaining_history: str

    @classmethod
    def root(cls, selector: str) -> "SelectorChain":
        return cls(actions=(QueryAllStep(selector=selector),), chaining_history=f"selector({selector})")

    def _append(self, step: ActionStep, label: str) -> "SelectorChain":
        return SelectorChain(
            actions=self.actions + (step,),
            chaining_history=f"{self.chaining_history}\n  .{label}",
        )

    def find(self, selector: str) -> "SelectorChain":
        return self._append(FindStep(selector=selector), f"find({selector})")

    def with_text(self, text: str) -> "SelectorChain":
        """Keep elements whose innerText contains `text`."""
        return self._append(WithTextStep(text=text), f"withText({text})")

    def with_value(self, text: str) -> "SelectorChain":
        """Keep elements whose value contains `text`."""
        return self._append(WithValueStep(text=text), f"withValue({text})")

    def nth(self, index: int) -> "SelectorChain":
        """
        nth(1): first element found at previous step.
        nth(-1): last element found at previous step.
        """
        return self._append(NthStep(index=index), f"nth({index})")

    def parent(self) -> "SelectorChain":
        return self._append(ParentStep(), "parent()")

    # ----------- Serialization -----------

    def to_state(self) -> dict:
        return {
            "actions": [step.model_dump(mode="json") for step in self.actions],
            "chainingHistory": self.chaining_history,
        }

    def stringify(self) -> str:
        return json.dumps(self.to_state())

    @classmethod
    def from_state(cls, state: dict | str) -> "SelectorChain":
        data: Any = json.loads(state) if isinstance(state, str) else state
        if not isinstance(data, dict) or "actions" not in data:
            raise ValueError("Selector state must be a mapping with an 'actions' list")
        return cls(
            actions=tuple(parse_step(dict(a)) for a in data["actions"]),
            chaining_history=str(data.get("chainingHistory", "")),
        )

    def __str__(self) -> str:
        return self.chaining_history

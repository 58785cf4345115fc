from __future__ import annotations

"""Selector resolution
---------------------
Replays a SelectorChain against the live page. Resolution never retries and
never caches: every call interrogates the DOM again. Use
pwfluent.utils.timing.wait_until when a test must wait for an element.
"""

from typing import Callable, List, Optional

from playwright.async_api import ElementHandle, Page

from pwfluent.selectors import handle_actions as actions
from pwfluent.selectors.chain import (
    ActionStep,
    FindStep,
    NthStep,
    ParentStep,
    QueryAllStep,
    SelectorChain,
    WithTextStep,
    WithValueStep,
)
from pwfluent.selectors.handle_actions import HandleVisibility
from pwfluent.utils.logger import get_logger

log = get_logger(__name__)

PageProvider = Callable[[], Optional[Page]]


class ChainRootError(ValueError):
    pass


class UnimplementedActionError(NotImplementedError):
    pass


class NoActivePageError(RuntimeError):
    pass


class SelectorResolver:
    """Interprets chains step by step through the handle_actions layer."""

    def __init__(self, page_provider: PageProvider) -> None:
        self.page_provider = page_provider

    def _page(self, chain: SelectorChain) -> Page:
        page = self.page_provider()
        if page is None:
            raise NoActivePageError(
                f"Cannot resolve selector because no browser has been launched:\n{chain}"
            )
        return page

    async def _apply(self, step: ActionStep, handles: List[ElementHandle], page: Page) -> List[ElementHandle]:
        if isinstance(step, QueryAllStep):
            return await actions.query_selector_all_in_page(step.selector, page)
        elif isinstance(step, FindStep):
            return await actions.query_selector_all_from_handles(step.selector, handles)
        elif isinstance(step, WithTextStep):
            return await actions.get_handles_with_text(step.text, handles)
        elif isinstance(step, WithValueStep):
            return await actions.get_handles_with_value(step.text, handles)
        elif isinstance(step, NthStep):
            return await actions.get_nth_handle(step.index, handles)
        elif isinstance(step, ParentStep):
            return await actions.get_parents_of(handles)
        else:
            raise UnimplementedActionError(f"Action '{step.name}' is not yet implemented")

    async def resolve(self, chain: SelectorChain) -> List[ElementHandle]:
        """
        Execute the chain and return every matching handle (possibly none).
        The result may differ from one call to the next while the page renders.
        """
        if not chain.actions or not isinstance(chain.actions[0], QueryAllStep):
            raise ChainRootError(f"Selector chain must start with a page query:\n{chain}")

        page = self._page(chain)
        handles: List[ElementHandle] = []
        for step in chain.actions:
            handles = await self._apply(step, list(handles), page)
        log.debug(f"{chain} -> {len(handles)} handle(s)")
        return handles

    async def first(self, chain: SelectorChain) -> Optional[ElementHandle]:
        handles = await self.resolve(chain)
        return handles[0] if handles else None

    async def count(self, chain: SelectorChain) -> int:
        return len(await self.resolve(chain))

    async def exists(self, chain: SelectorChain) -> bool:
        return await self.first(chain) is not None

    async def visibility(self, chain: SelectorChain) -> HandleVisibility:
        return await actions.get_handle_visibility(await self.first(chain))

    async def is_visible(self, chain: SelectorChain) -> bool:
        """Checked on the first handle only; a moving element is not (yet) visible."""
        return await self.visibility(chain) == HandleVisibility.visible

    async def is_not_visible(self, chain: SelectorChain) -> bool:
        """A missing element is not visible; a moving element is neither visible nor not visible."""
        return await self.visibility(chain) == HandleVisibility.hidden


class FluentSelector:
    """
    A selector chain bound to a resolver.

        row = p.selector("tr").with_text("foobar")
        cell = row.find("td").nth(2)
        await cell.is_visible()

    Chaining never touches the page and never mutates the receiver.
    """

    def __init__(self, chain: SelectorChain, resolver: SelectorResolver) -> None:
        self.chain = chain
        self.resolver = resolver

    @classmethod
    def from_state(cls, state: dict | str, resolver: SelectorResolver) -> "FluentSelector":
        return cls(SelectorChain.from_state(state), resolver)

    def _derive(self, chain: SelectorChain) -> "FluentSelector":
        return FluentSelector(chain, self.resolver)

    def find(self, selector: str) -> "FluentSelector":
        return self._derive(self.chain.find(selector))

    def with_text(self, text: str) -> "FluentSelector":
        return self._derive(self.chain.with_text(text))

    def with_value(self, text: str) -> "FluentSelector":
        return self._derive(self.chain.with_value(text))

    def nth(self, index: int) -> "FluentSelector":
        return self._derive(self.chain.nth(index))

    def parent(self) -> "FluentSelector":
        return self._derive(self.chain.parent())

    async def get_all_handles(self) -> List[ElementHandle]:
        return await self.resolver.resolve(self.chain)

    async def get_handle(self) -> Optional[ElementHandle]:
        return await self.resolver.first(self.chain)

    async def count(self) -> int:
        return await self.resolver.count(self.chain)

    async def exists(self) -> bool:
        return await self.resolver.exists(self.chain)

    async def does_not_exist(self) -> bool:
        return not await self.resolver.exists(self.chain)

    async def is_visible(self) -> bool:
        return await self.resolver.is_visible(self.chain)

    async def is_not_visible(self) -> bool:
        return await self.resolver.is_not_visible(self.chain)

    def to_state(self) -> dict:
        return self.chain.to_state()

    def stringify(self) -> str:
        return self.chain.stringify()

    def __str__(self) -> str:
        return str(self.chain)

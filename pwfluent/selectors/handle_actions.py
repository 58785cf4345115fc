from __future__ import annotations

"""DOM capability layer
----------------------
Per-step transformers used by the selector resolver. Each one takes the
handles produced by the previous step and returns a new list; an empty list
is a normal outcome, never an error.
"""

from enum import Enum
from typing import List, Optional, Sequence

from playwright.async_api import ElementHandle, Page

from pwfluent.utils.logger import get_logger

log = get_logger(__name__)

Handles = List[ElementHandle]

INNER_TEXT_JS = "el => el.innerText"
VALUE_JS = "el => el.value"
PARENT_JS = "el => el.parentElement"

# An element is moving when it has running animations/transitions or when its
# bounding box changes between two animation frames.
IS_MOVING_JS = """
async (el) => {
  const running = typeof el.getAnimations === 'function'
    && el.getAnimations().some(a => a.playState === 'running');
  const r1 = el.getBoundingClientRect();
  await new Promise(r => requestAnimationFrame(() => requestAnimationFrame(r)));
  const r2 = el.getBoundingClientRect();
  const moved = r1.x !== r2.x || r1.y !== r2.y || r1.width !== r2.width || r1.height !== r2.height;
  return running || moved;
}
"""


class HandleVisibility(str, Enum):
    hidden = "hidden"
    moving = "moving"
    visible = "visible"


async def query_selector_all_in_page(selector: str, page: Page) -> Handles:
    return await page.query_selector_all(selector)


async def query_selector_all_from_handles(selector: str, handles: Sequence[ElementHandle]) -> Handles:
    result: Handles = []
    for handle in handles:
        result.extend(await handle.query_selector_all(selector))
    return result


async def get_handles_with_text(text: str, handles: Sequence[ElementHandle]) -> Handles:
    result: Handles = []
    for handle in handles:
        inner_text = await handle.evaluate(INNER_TEXT_JS)
        if isinstance(inner_text, str) and text in inner_text:
            result.append(handle)
    return result


async def get_handles_with_value(text: str, handles: Sequence[ElementHandle]) -> Handles:
    result: Handles = []
    for handle in handles:
        value = await handle.evaluate(VALUE_JS)
        if isinstance(value, str) and text in value:
            result.append(handle)
    return result


async def get_nth_handle(index: int, handles: Sequence[ElementHandle]) -> Handles:
    """1-based index, -1 for the last one; 0 or out of range gives []."""
    if index == -1:
        return [handles[-1]] if handles else []
    if index < 1 or index > len(handles):
        return []
    return [handles[index - 1]]


async def get_parents_of(handles: Sequence[ElementHandle]) -> Handles:
    result: Handles = []
    for handle in handles:
        js_handle = await handle.evaluate_handle(PARENT_JS)
        parent = js_handle.as_element()
        if parent is not None:
            result.append(parent)
    return result


async def is_handle_moving(handle: ElementHandle) -> bool:
    return bool(await handle.evaluate(IS_MOVING_JS))


async def get_handle_visibility(handle: Optional[ElementHandle]) -> HandleVisibility:
    """Classify a handle; a missing handle is simply hidden."""
    if handle is None:
        return HandleVisibility.hidden
    if not await handle.is_visible():
        return HandleVisibility.hidden
    if await is_handle_moving(handle):
        log.debug("Handle is visible but still moving")
        return HandleVisibility.moving
    return HandleVisibility.visible

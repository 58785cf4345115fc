import pytest

from pwfluent.selectors.chain import FindStep, SelectorChain
from pwfluent.selectors.handle_actions import HandleVisibility
from pwfluent.selectors.resolver import (
    ChainRootError,
    FluentSelector,
    NoActivePageError,
    SelectorResolver,
    UnimplementedActionError,
)
from tests.unit.fakes import FakeDomPage, FakeElement


def build_table():
    rows = [
        FakeElement("tr", text="foo 1", children=(FakeElement("td", text="foo"), FakeElement("td", text="1"))),
        FakeElement("tr", text="bar 2", children=(FakeElement("td", text="bar"), FakeElement("td", text="2"))),
        FakeElement("tr", text="foo 3", children=(FakeElement("td", text="foo"), FakeElement("td", text="3"))),
    ]
    inputs = [FakeElement("input", value="john"), FakeElement("input", value="jane doe")]
    table = FakeElement("table", children=tuple(rows))
    form = FakeElement("form", children=tuple(inputs))
    document = FakeElement("html", children=(FakeElement("body", children=(table, form)),))
    return document, table, rows, inputs


@pytest.fixture
def dom():
    document, table, rows, inputs = build_table()
    page = FakeDomPage(document)
    return {"page": page, "table": table, "rows": rows, "inputs": inputs, "resolver": SelectorResolver(lambda: page)}


@pytest.mark.asyncio
async def test_resolving_twice_yields_same_handles(dom):
    chain = SelectorChain.root("tr").with_text("foo")
    first = await dom["resolver"].resolve(chain)
    second = await dom["resolver"].resolve(chain)
    assert [id(h) for h in first] == [id(h) for h in second]
    assert first == [dom["rows"][0], dom["rows"][2]]
    # never cached: the page was queried both times
    assert dom["page"].queries == ["tr", "tr"]


@pytest.mark.asyncio
async def test_find_collects_descendants_in_order(dom):
    cells = await dom["resolver"].resolve(SelectorChain.root("tr").find("td"))
    assert [c.text for c in cells] == ["foo", "1", "bar", "2", "foo", "3"]


@pytest.mark.asyncio
async def test_with_value_filters_on_value(dom):
    handles = await dom["resolver"].resolve(SelectorChain.root("input").with_value("doe"))
    assert handles == [dom["inputs"][1]]


@pytest.mark.asyncio
@pytest.mark.parametrize("index, expected", [(1, 0), (2, 1), (3, 2), (-1, 2)])
async def test_nth_is_one_based_and_minus_one_is_last(dom, index, expected):
    handles = await dom["resolver"].resolve(SelectorChain.root("tr").nth(index))
    assert handles == [dom["rows"][expected]]


@pytest.mark.asyncio
@pytest.mark.parametrize("index", [0, 4, 99, -2])
async def test_nth_out_of_range_is_empty(dom, index):
    assert await dom["resolver"].resolve(SelectorChain.root("tr").nth(index)) == []


@pytest.mark.asyncio
async def test_nth_last_of_nothing_is_empty(dom):
    assert await dom["resolver"].resolve(SelectorChain.root("video").nth(-1)) == []


@pytest.mark.asyncio
async def test_parent_goes_up_one_level(dom):
    parents = await dom["resolver"].resolve(SelectorChain.root("tr").with_text("bar").find("td").nth(1).parent())
    assert parents == [dom["rows"][1]]


@pytest.mark.asyncio
async def test_first_count_exists_on_empty_result(dom):
    chain = SelectorChain.root("tr").with_text("does not exist")
    resolver = dom["resolver"]
    assert await resolver.first(chain) is None
    assert await resolver.count(chain) == 0
    assert await resolver.exists(chain) is False


@pytest.mark.asyncio
async def test_chain_must_start_with_page_query(dom):
    chain = SelectorChain(actions=(FindStep(selector="td"),), chaining_history="find(td)")
    with pytest.raises(ChainRootError):
        await dom["resolver"].resolve(chain)


@pytest.mark.asyncio
async def test_unknown_step_fails_loudly(dom):
    chain = SelectorChain.from_state(
        {"actions": [{"name": "querySelectorAllInPage", "selector": "tr"}, {"name": "nextSibling"}]}
    )
    with pytest.raises(UnimplementedActionError, match="nextSibling"):
        await dom["resolver"].resolve(chain)


@pytest.mark.asyncio
async def test_no_page_is_a_programming_error():
    resolver = SelectorResolver(lambda: None)
    with pytest.raises(NoActivePageError):
        await resolver.count(SelectorChain.root("div"))


@pytest.mark.asyncio
async def test_reconstructed_chain_resolves_like_the_original(dom):
    original = FluentSelector(SelectorChain.root("tr"), dom["resolver"]).with_text("foo").find("td").nth(-1)
    rebuilt = FluentSelector.from_state(original.stringify(), dom["resolver"])
    assert await rebuilt.get_all_handles() == await original.get_all_handles()
    assert str(rebuilt) == str(original)


@pytest.mark.asyncio
async def test_visibility_states():
    shown = FakeElement("p", text="shown")
    hidden = FakeElement("span", text="hidden", visible=False)
    sliding = FakeElement("aside", text="sliding", moving=True)
    page = FakeDomPage(FakeElement("html", children=(shown, hidden, sliding)))
    resolver = SelectorResolver(lambda: page)

    assert await resolver.visibility(SelectorChain.root("p")) == HandleVisibility.visible
    assert await resolver.is_visible(SelectorChain.root("p")) is True
    assert await resolver.is_not_visible(SelectorChain.root("span")) is True
    # missing element counts as not visible
    assert await resolver.is_not_visible(SelectorChain.root("dialog")) is True

    moving = SelectorChain.root("aside")
    assert await resolver.visibility(moving) == HandleVisibility.moving
    assert await resolver.is_visible(moving) is False
    assert await resolver.is_not_visible(moving) is False


@pytest.mark.asyncio
async def test_visibility_is_re_evaluated_each_call():
    banner = FakeElement("div", text="banner", visible=False)
    page = FakeDomPage(FakeElement("html", children=(banner,)))
    selector = FluentSelector(SelectorChain.root("div"), SelectorResolver(lambda: page))

    assert await selector.is_visible() is False
    banner.visible = True
    assert await selector.is_visible() is True

"""版式渲染器测试：拆分规则、各版式分派与默认回退。"""

import pytest

from ai_deck.common.types import AnimationTheme, SlideLayout
from ai_deck.render.elements import (
    COMPARISON_FALLBACKS,
    DEFAULT_BACKGROUND,
    DEFAULT_TEXT_COLOR,
    NEUTRAL_PANEL,
    SLIDE_HEIGHT,
    SLIDE_WIDTH,
    TINT_ALPHA,
    BulletList,
    Picture,
    TextBox,
)
from ai_deck.render.layout import (
    fit_font_size,
    image_side,
    render_deck,
    render_slide,
    render_title_slide,
    resolve_layout,
    split_halves,
    timeline_items,
)
from conftest import make_presentation, make_slide

THEME = "#2563EB"


@pytest.mark.parametrize(
    "length, left, right",
    [(0, 0, 0), (1, 1, 0), (2, 1, 1), (5, 3, 2), (6, 3, 3)],
)
def test_split_halves_uses_ceiling(length, left, right):
    items = [f"item {i}" for i in range(length)]
    first, second = split_halves(items)
    assert (len(first), len(second)) == (left, right)
    assert first + second == items


def test_timeline_items_truncates_to_four():
    assert timeline_items(list("abcdef")) == list("abcd")
    assert timeline_items(["x"]) == ["x"]


def test_image_side_and_layout_resolution():
    assert image_side("image-left") == "left"
    assert image_side(SlideLayout.IMAGE_RIGHT) == "right"
    assert image_side("comparison") is None
    assert resolve_layout("Quote") is SlideLayout.QUOTE
    assert resolve_layout("hexagon") is SlideLayout.CONTENT


@pytest.mark.parametrize("layout", list(SlideLayout))
def test_every_layout_renders_inside_the_canvas(layout):
    render = render_slide(make_slide(layout=layout, content=["a", "b", "c", "d", "e"]), THEME)

    assert render.layout is layout
    assert render.elements
    for element in render.elements:
        assert 0 <= element.x and element.x + element.w <= SLIDE_WIDTH
        assert 0 <= element.y and element.y + element.h <= SLIDE_HEIGHT


@pytest.mark.parametrize("layout", [l for l in SlideLayout if l is not SlideLayout.QUOTE])
def test_every_layout_tolerates_empty_content(layout):
    assert render_slide(make_slide(layout=layout, content=[]), THEME).elements


def test_unknown_layout_falls_back_to_default():
    slide = make_slide().model_copy(update={"layout": "hexagon"})

    render = render_slide(slide, THEME)

    assert render.layout is SlideLayout.CONTENT
    assert [e.role for e in render.elements] == [
        e.role for e in render_slide(make_slide(layout=SlideLayout.CONTENT), THEME).elements
    ]


def test_default_layout_structure_and_colors():
    render = render_slide(make_slide(layout=SlideLayout.TITLE), THEME)

    title, = render.by_role("title")
    body, = render.by_role("body")
    panel, = render.by_role("caption-panel")
    caption, = render.by_role("caption")

    assert title.text == "Growth" and title.color == THEME and title.w == 9.0
    assert body.items == ["One", "Two", "Three"]
    assert body.marker_color == THEME
    assert body.text_color == DEFAULT_TEXT_COLOR
    assert panel.fill == NEUTRAL_PANEL and panel.alpha == 1.0
    assert caption.italic and caption.font_size < body.font_size
    assert caption.y >= body.y + body.h
    assert render.background == DEFAULT_BACKGROUND


def test_slide_color_overrides_apply_to_that_slide_only():
    slide = make_slide(background_color="#112233", text_color="#EEEEEE")

    render = render_slide(slide, THEME)

    assert render.background == "#112233"
    body, = render.by_role("body")
    assert body.text_color == "#EEEEEE"
    assert body.marker_color == THEME
    panel, = render.by_role("caption-panel")
    assert (panel.fill, panel.alpha) == ("#112233", TINT_ALPHA)
    # 其他页仍使用默认配色
    assert render_slide(make_slide(), THEME).background == DEFAULT_BACKGROUND


def test_quote_layout_scenario():
    render = render_slide(make_slide(layout=SlideLayout.QUOTE, content=["Stay hungry", "Steve"]), THEME)

    quote, = render.by_role("quote")
    attribution, = render.by_role("attribution")
    assert "Stay hungry" in quote.text
    assert quote.font_size > attribution.font_size and quote.italic and quote.color == THEME
    assert attribution.text == "— Steve"
    assert attribution.align == "right"
    assert attribution.y > quote.y
    assert not [e for e in render.elements if isinstance(e, BulletList)]


def test_quote_without_attribution():
    render = render_slide(make_slide(layout=SlideLayout.QUOTE, content=["Only the quote"]), THEME)
    assert render.by_role("attribution") == []


def test_comparison_panels_split_and_fill():
    render = render_slide(make_slide(layout=SlideLayout.COMPARISON, content=list("abcde")), THEME)

    left_panel, right_panel = render.by_role("panel")
    left, right = render.by_role("column")
    assert left.items == ["a", "b", "c"] and right.items == ["d", "e"]
    assert (left_panel.fill, right_panel.fill) == COMPARISON_FALLBACKS
    assert left_panel.x < right_panel.x

    tinted = render_slide(
        make_slide(layout=SlideLayout.COMPARISON, background_color="#FF8800"), THEME
    )
    assert {(p.fill, p.alpha) for p in tinted.by_role("panel")} == {("#FF8800", TINT_ALPHA)}


LONG_EXPLANATION = " ".join(["Quarterly revenue grew across every region this year."] * 18)


@pytest.mark.parametrize("layout", [SlideLayout.CONTENT, SlideLayout.IMAGE_LEFT, SlideLayout.QUOTE])
def test_long_explanation_shrinks_caption(layout):
    slide = make_slide(layout=layout, content=["Stay hungry", "Steve"], explanation=LONG_EXPLANATION)

    caption, = render_slide(slide, THEME).by_role("caption")

    assert 7 <= caption.font_size < 11
    assert caption.shrink_to_fit
    assert caption.y + caption.h <= SLIDE_HEIGHT
    short, = render_slide(make_slide(layout=layout, content=["Stay hungry"]), THEME).by_role("caption")
    assert short.font_size == 11


def test_fit_font_size_prefers_largest_fitting_size():
    assert fit_font_size("short", 4.0, 0.9, 11, 7) == 11
    assert fit_font_size("x" * 5000, 4.0, 0.9, 11, 7) == 7
    wide = fit_font_size(LONG_EXPLANATION, 8.8, 0.9, 11, 7)
    narrow = fit_font_size(LONG_EXPLANATION, 4.1, 0.9, 11, 7)
    assert narrow <= wide


def test_two_column_is_plain_split():
    render = render_slide(make_slide(layout=SlideLayout.TWO_COLUMN, content=["a", "b", "c"]), THEME)

    left, right = render.by_role("column")
    assert left.items == ["a", "b"] and right.items == ["c"]
    assert render.by_role("panel") == []
    assert render.by_role("caption-panel") == []


def test_timeline_nodes_are_capped_and_evenly_spaced():
    render = render_slide(make_slide(layout=SlideLayout.TIMELINE, content=list("abcdef")), THEME)

    nodes = render.by_role("node")
    captions = render.by_role("node-caption")
    connector, = render.by_role("connector")
    assert len(nodes) == 4
    assert [c.text for c in captions] == list("abcd")
    assert connector.color == THEME and connector.h == 0
    gaps = {round(b.x - a.x, 6) for a, b in zip(nodes, nodes[1:])}
    assert len(gaps) == 1

    two = render_slide(make_slide(layout=SlideLayout.TIMELINE, content=["a", "b"]), THEME).by_role("node")
    assert round(two[1].x - two[0].x, 6) == gaps.pop()


@pytest.mark.parametrize("layout, image_x, text_x", [
    (SlideLayout.IMAGE_LEFT, 0.5, 5.2),
    (SlideLayout.IMAGE_RIGHT, 5.2, 0.5),
])
def test_image_layouts_place_picture_on_their_side(layout, image_x, text_x):
    slide = make_slide(layout=layout)
    render = render_slide(slide, THEME)

    picture, = [e for e in render.elements if isinstance(e, Picture)]
    title, = render.by_role("title")
    body, = render.by_role("body")
    assert picture.x == image_x and picture.url == slide.image_url
    assert title.x == text_x and body.x == text_x
    assert render.by_role("caption-panel")[0].x == text_x


def test_transition_and_notes():
    deck_default = render_slide(make_slide(notes="Say hello"), THEME, AnimationTheme.ZOOM)
    assert deck_default.transition is AnimationTheme.ZOOM
    assert deck_default.notes == "Say hello"

    override = render_slide(make_slide(animation=AnimationTheme.BOUNCE), THEME, AnimationTheme.ZOOM)
    assert override.transition is AnimationTheme.BOUNCE
    assert override.notes is None


def test_title_slide_and_deck_order():
    presentation = make_presentation(
        make_slide(title="First"), make_slide(title="Second", layout=SlideLayout.QUOTE)
    )

    cover = render_title_slide(presentation)
    title, subtitle = [e for e in cover.elements if isinstance(e, TextBox)]
    assert (title.text, subtitle.text) == ("Q1 Report", "Quarterly results")
    assert title.align == subtitle.align == "center"

    renders = render_deck(presentation)
    assert len(renders) == 3
    assert [r.by_role("title")[0].text for r in renders[1:]] == ["First", "Second"]

"""Tests for the Svelte Native back-end."""

from pathlib import Path

import pytest

from widgetgen.backends.svelte import (
    SvelteGenerator,
    _AttrList,
    generate_svelte,
    output_name,
    should_localize,
)
from widgetgen.layout.loader import discover_layouts, load_layout
from widgetgen.layout.model import WidgetLayout


@pytest.fixture
def simple_svelte(simple_layout: WidgetLayout) -> str:
    return generate_svelte(simple_layout)


@pytest.fixture
def clock_svelte(layouts_dir: Path) -> str:
    return generate_svelte(load_layout(layouts_dir / "clock_date.json"))


class TestScripts:
    def test_module_script(self, simple_svelte: str) -> None:
        assert simple_svelte.startswith('<script context="module" lang="ts">\n')
        assert "    import { Template } from 'svelte-native/components';" in simple_svelte
        assert "    import { colors } from '~/variables';" in simple_svelte
        assert "formatDate" not in simple_svelte

    def test_instance_script(self, simple_svelte: str) -> None:
        assert "    export let data: WeatherWidgetData;" in simple_svelte
        assert (
            "    export let size: { width: number; height: number } = { width: 160, height: 160 };"
        ) in simple_svelte

    def test_only_used_colors_are_declared(self, simple_svelte: str) -> None:
        assert (
            "    $: ({ colorError, colorOnSurface, colorOnSurfaceVariant, colorWidgetBackground } = $colors);"
        ) in simple_svelte
        assert "colorPrimary" not in simple_svelte

    def test_clock_helpers(self, clock_svelte: str) -> None:
        assert "    import { formatDate } from '~/helpers/formatter';" in clock_svelte
        assert "    function nowTime(format: string) {" in clock_svelte
        assert "    function nowDate(format: string) {" in clock_svelte
        assert "Template" not in clock_svelte


class TestMarkup:
    def test_root_container(self, simple_svelte: str) -> None:
        assert (
            '<gridlayout width={size.width} height={size.height} '
            'backgroundColor={colorWidgetBackground} padding="8" class="widget-container">'
        ) in simple_svelte

    def test_variant_chain(self, simple_svelte: str) -> None:
        assert "{#if size.width < 100}" in simple_svelte
        assert "{:else}" in simple_svelte
        assert "{/if}" in simple_svelte

    def test_labels(self, simple_svelte: str) -> None:
        assert (
            '<label text={data.temperature} marginBottom="4" color={colorOnSurface} '
            'fontSize="32" fontWeight="bold" />'
        ) in simple_svelte
        assert 'maxLines="1"' in simple_svelte

    def test_column_alignment(self, simple_svelte: str) -> None:
        assert '<stacklayout orientation="vertical" horizontalAlignment="left">' in simple_svelte

    def test_image_and_divider(self, simple_svelte: str) -> None:
        assert '<image src={data.iconPath} width="48" height="48" />' in simple_svelte
        assert '<stacklayout height="1" backgroundColor={colorOnSurfaceVariant} />' in simple_svelte

    def test_for_each(self, simple_svelte: str) -> None:
        assert (
            '<collectionview items={(data.hourlyData ?? []).slice(0, 3)} orientation="horizontal">'
        ) in simple_svelte
        assert "<Template let:item>" in simple_svelte
        assert '<label text={item.hour} color={colorOnSurfaceVariant} fontSize="12" />' in simple_svelte

    def test_conditional_and_case_color(self, simple_svelte: str) -> None:
        assert (
            "{#if (data.description !== undefined && data.description !== null "
            "&& data.description !== '')}"
        ) in simple_svelte
        assert "color={(data.alert == 'true' ? colorError : colorOnSurfaceVariant)}" in simple_svelte

    def test_clock_and_date(self, clock_svelte: str) -> None:
        assert (
            "<label text={nowTime('HH:mm')} marginRight=\"8\" color={colorPrimary} "
            'fontSize="28" fontWeight="bold" />'
        ) in clock_svelte
        assert "text={nowDate('EEE, MMM d')}" in clock_svelte
        assert 'color="#FFAA00"' in clock_svelte
        assert '<stacklayout flexGrow="1" />' in clock_svelte
        assert "Feels like" not in clock_svelte

    def test_localized_label(self, make_layout) -> None:
        source = generate_svelte(make_layout({"type": "label", "text": "Feels like"}))
        assert "<label text={l('feels_like')} />" in source
        assert "    import { l } from '~/helpers/locale';" in source

    def test_box_sides(self, make_layout) -> None:
        source = generate_svelte(
            make_layout({"type": "label", "text": "{{x}}", "paddingTop": 2, "paddingLeft": 4})
        )
        assert '<label text={data.x} paddingTop="2" paddingLeft="4" />' in source
        uniform = generate_svelte(make_layout({"type": "label", "text": "{{x}}", "padding": 4}))
        assert '<label text={data.x} padding="4" />' in uniform

    def test_literal_attributes_are_escaped(self, make_layout) -> None:
        source = generate_svelte(make_layout({"type": "image", "src": 'a"b.png'}))
        assert 'src="a&#34;b.png"' in source

    def test_literal_braces_are_escaped(self, make_layout) -> None:
        source = generate_svelte(
            make_layout(
                {
                    "type": "column",
                    "children": [{"type": "label", "text": "{"}, {"type": "label", "text": "{ }"}],
                }
            )
        )
        assert '<label text="&#123;" />' in source
        assert '<label text="&#123; &#125;" />' in source

    def test_for_each_margin_is_applied_once(self, make_layout) -> None:
        layout = make_layout(
            {
                "type": "column",
                "children": [
                    {
                        "type": "forEach",
                        "items": "hourlyData",
                        "itemTemplate": {"type": "label", "text": "{{hour}}"},
                    },
                    {"type": "spacer", "size": 12},
                    {"type": "label", "text": "{{description}}"},
                ],
            }
        )
        source = generate_svelte(layout)
        assert source.count('marginBottom="12"') == 1
        assert '<stacklayout orientation="vertical" marginBottom="12">' in source
        assert "<collectionview items={(data.hourlyData ?? [])}>" in source

    def test_conditional_margin_is_applied_once(self, make_layout) -> None:
        layout = make_layout(
            {
                "type": "row",
                "children": [
                    {
                        "type": "conditional",
                        "condition": "{{alert}}",
                        "then": {"type": "label", "text": "{{alert}}"},
                    },
                    {"type": "spacer", "size": 6},
                    {"type": "label", "text": "{{description}}"},
                ],
            }
        )
        source = generate_svelte(layout)
        assert source.count('marginRight="6"') == 1
        assert '<stacklayout orientation="horizontal" marginRight="6">' in source

    def test_for_each_limit_is_a_slice(self, make_layout) -> None:
        layout = make_layout(
            {
                "type": "forEach",
                "items": "dailyData",
                "limit": 3,
                "itemTemplate": {"type": "label", "text": "{{day}}"},
            }
        )
        assert "items={(data.dailyData ?? []).slice(0, 3)}" in generate_svelte(layout)

    def test_output_is_deterministic(self, simple_layout: WidgetLayout) -> None:
        assert generate_svelte(simple_layout) == generate_svelte(simple_layout)

    def test_output_name(self, simple_layout: WidgetLayout) -> None:
        assert output_name(simple_layout) == "SimpleWeatherView.generated.svelte"


class TestHelpers:
    @pytest.mark.parametrize("text", ["Feels like", "Humidity", "UV index"])
    def test_localized_texts(self, text: str) -> None:
        assert should_localize(text)

    @pytest.mark.parametrize("text", ["8", "°", "12.5", "{{temperature}}", "data.x", 12, None])
    def test_texts_left_alone(self, text) -> None:
        assert not should_localize(text)

    def test_attr_list_ignores_repeats(self) -> None:
        attrs = _AttrList()
        attrs.add("width", "10")
        attrs.add("width", "20")
        assert [(a.name, a.value) for a in attrs.attrs] == [("width", "10")]


class TestSvelteGenerator:
    def test_generates_one_file_per_layout(self, layouts_dir: Path, tmp_path: Path) -> None:
        result = SvelteGenerator(tmp_path).generate(discover_layouts(layouts_dir))
        assert result.success
        assert sorted(p.name for p in result.files_created) == [
            "ClockDateView.generated.svelte",
            "SimpleWeatherView.generated.svelte",
        ]

"""
Tests for the Jetpack Glance back-end.

Checks are made on fragments of the generated source rather than whole
files so formatting tweaks elsewhere in the output do not break them.
"""

from pathlib import Path

from widgetgen.backends.kotlin import (
    DEFAULT_PACKAGE,
    KotlinGenerator,
    drawable_name,
    generate_kotlin,
    output_name,
)
from widgetgen.diagnostics import DiagnosticCode, Diagnostics
from widgetgen.layout.loader import discover_layouts, load_layout
from widgetgen.layout.model import WidgetLayout


class TestFileStructure:
    def test_header_and_function(self, simple_layout: WidgetLayout) -> None:
        source = generate_kotlin(simple_layout)
        assert source.startswith(f"package {DEFAULT_PACKAGE}\n")
        assert "import com.akylas.weather.R\n" in source
        assert " * Generated content for Simple Weather\n" in source
        assert "@Composable\nfun SimpleWeatherContent(data: SimpleWeatherData) {\n" in source
        assert "    val size = LocalSize.current\n" in source

    def test_custom_package(self, simple_layout: WidgetLayout) -> None:
        source = generate_kotlin(simple_layout, package="org.example.widgets", r_class="org.example.R")
        assert source.startswith("package org.example.widgets\n")
        assert "import org.example.R\n" in source

    def test_root_box(self, simple_layout: WidgetLayout) -> None:
        source = generate_kotlin(simple_layout)
        assert (
            "modifier = GlanceModifier.fillMaxSize()"
            ".background(GlanceTheme.colors.background).padding(8.dp)"
        ) in source

    def test_output_is_deterministic(self, simple_layout: WidgetLayout) -> None:
        assert generate_kotlin(simple_layout) == generate_kotlin(simple_layout)

    def test_output_name(self, simple_layout: WidgetLayout) -> None:
        assert output_name(simple_layout) == "SimpleWeatherContent.generated.kt"


class TestElements:
    def test_variant_becomes_if_chain(self, simple_layout: WidgetLayout) -> None:
        source = generate_kotlin(simple_layout)
        assert "if (size.width.value < 100) {" in source
        assert "} else {" in source

    def test_labels(self, simple_layout: WidgetLayout) -> None:
        source = generate_kotlin(simple_layout)
        assert "text = data.temperature," in source
        assert (
            "style = TextStyle(fontSize = 32.sp, fontWeight = FontWeight.Bold, "
            "color = GlanceTheme.colors.onSurface)"
        ) in source
        assert "maxLines = 1" in source

    def test_spacer_folds_into_margin(self, simple_layout: WidgetLayout) -> None:
        source = generate_kotlin(simple_layout)
        assert "modifier = GlanceModifier.padding(bottom = 4.dp)," in source
        assert "Spacer(" not in source

    def test_bound_image_resolves_identifier(self, simple_layout: WidgetLayout) -> None:
        source = generate_kotlin(simple_layout)
        assert "    val context = LocalContext.current\n" in source
        assert (
            'ImageProvider(resId = context.resources.getIdentifier(data.iconPath, "drawable", '
            "context.packageName))"
        ) in source
        assert "GlanceModifier.size(48.dp)" in source

    def test_literal_image_uses_drawable(self, make_layout) -> None:
        source = generate_kotlin(make_layout({"type": "image", "src": "images/01d.png"}))
        assert "ImageProvider(resId = R.drawable.ic_01d)" in source
        assert "LocalContext.current" not in source

    def test_divider(self, simple_layout: WidgetLayout) -> None:
        source = generate_kotlin(simple_layout)
        assert (
            "modifier = GlanceModifier.fillMaxWidth().height(1.dp)"
            ".background(GlanceTheme.colors.onSurfaceVariant)"
        ) in source

    def test_for_each_in_horizontal_scroll(self, simple_layout: WidgetLayout) -> None:
        source = generate_kotlin(simple_layout)
        assert "Row {" in source
        assert "data.hourlyData.take(3).forEach { item ->" in source
        assert "text = item.hour," in source

    def test_vertical_for_each_is_lazy_column(self, make_layout) -> None:
        layout = make_layout(
            {
                "type": "forEach",
                "items": "dailyData",
                "direction": "vertical",
                "itemTemplate": {"type": "label", "text": "{{day}}"},
            }
        )
        source = generate_kotlin(layout)
        assert "LazyColumn {" in source
        assert "items(data.dailyData) { item ->" in source

    def test_conditional_and_case_color(self, simple_layout: WidgetLayout) -> None:
        source = generate_kotlin(simple_layout)
        assert "if ((data.description != null && data.description.toString().isNotEmpty())) {" in source
        assert (
            'color = when { data.alert == "true" -> GlanceTheme.colors.error; '
            "else -> GlanceTheme.colors.onSurfaceVariant }"
        ) in source

    def test_clock_and_date(self, layouts_dir: Path) -> None:
        source = generate_kotlin(load_layout(layouts_dir / "clock_date.json"))
        assert (
            'android.text.format.DateFormat.format(if (android.text.format.DateFormat.is24HourFormat(context)) '
            '"HH:mm" else "h:mm a", System.currentTimeMillis()).toString()'
        ) in source
        assert '"EEE, MMM d"' in source
        assert "color = ColorProvider(Color(0xFFFFAA00))" in source
        assert "GlanceModifier.defaultWeight()" in source
        assert "Feels like" not in source

    def test_spacing_becomes_end_padding(self, layouts_dir: Path) -> None:
        source = generate_kotlin(load_layout(layouts_dir / "clock_date.json"))
        assert source.count("modifier = GlanceModifier.padding(end = 8.dp),") == 2


class TestSupportCode:
    def test_truthy_helper_only_when_used(self, simple_layout: WidgetLayout, make_layout) -> None:
        assert "private fun truthy" not in generate_kotlin(simple_layout)
        layout = make_layout({"type": "label", "text": "hi", "visible": "{{showGreeting}}"})
        source = generate_kotlin(layout)
        assert "if (truthy(data.showGreeting)) {" in source
        assert "private fun truthy(v: Any?): Boolean = when (v) {" in source

    def test_data_classes(self, simple_layout: WidgetLayout) -> None:
        source = generate_kotlin(simple_layout)
        assert "data class SimpleWeatherData(" in source
        assert '    val temperature: String = ""' in source
        assert '    val alert: String = ""' in source
        assert "    val hourlyData: List<HourlyForecast> = emptyList()" in source
        assert "data class HourlyForecast(" in source

    def test_unknown_list_gets_item_class(self, make_layout) -> None:
        layout = make_layout(
            {
                "type": "forEach",
                "items": "alerts",
                "itemTemplate": {"type": "label", "text": "{{title}}"},
            }
        )
        source = generate_kotlin(layout)
        assert "    val alerts: List<AlertsItem> = emptyList()" in source
        assert 'data class AlertsItem(\n    val title: String = ""\n)' in source

    def test_unknown_operator_is_reported(self, make_layout) -> None:
        diagnostics: Diagnostics = []
        generate_kotlin(make_layout({"type": "label", "text": ["frobnicate", 1]}), diagnostics=diagnostics)
        assert [d.code for d in diagnostics] == [DiagnosticCode.UNKNOWN_OPERATOR]

    def test_drawable_name(self) -> None:
        assert drawable_name("images/01d.png") == "ic_01d"
        assert drawable_name("weather/Sun-Cloud.svg") == "sun_cloud"


class TestKotlinGenerator:
    def test_generates_one_file_per_layout(self, layouts_dir: Path, tmp_path: Path) -> None:
        result = KotlinGenerator(tmp_path).generate(discover_layouts(layouts_dir))
        assert result.success
        assert sorted(p.name for p in result.files_created) == [
            "ClockDateContent.generated.kt",
            "SimpleWeatherContent.generated.kt",
        ]
        assert (tmp_path / "SimpleWeatherContent.generated.kt").read_text().startswith("package ")

import pytest

from mobile_pilot.utils.ui_hierarchy import (
    Bounds,
    PrunedElement,
    find_element_at,
    find_element_by_content_desc,
    find_element_by_resource_id,
    find_element_by_text,
    format_elements_for_prompt,
    parse_bounds,
    prune_hierarchy,
    truncate_text,
)


@pytest.fixture
def sample_xml():
    """A small uiautomator dump with visible, hidden and decorative nodes."""
    return """<?xml version="1.0" encoding="UTF-8"?>
<hierarchy rotation="0">
  <node class="android.widget.FrameLayout" bounds="[0,0][1080,1920]">
    <node class="android.widget.TextView" resource-id="com.app:id/title" text="  Settings  " bounds="[0,100][1080,200]" clickable="false"/>
    <node class="android.widget.Button" resource-id="com.app:id/hidden" text="Hidden" bounds="[0,300][100,400]" displayed="false"/>
    <node class="android.widget.Button" resource-id="com.app:id/empty" text="Zero" bounds="[50,50][50,90]"/>
    <node class="android.widget.ImageButton" content-desc="More options" bounds="[980,100][1080,200]" clickable="true" enabled="false"/>
    <node class="android.view.View" bounds="[0,500][1080,600]" clickable="true"/>
    <node class="android.view.View" text="   " bounds="[0,700][1080,800]"/>
    <node class="android.widget.Button" text="No bounds"/>
  </node>
</hierarchy>"""


class TestParseBounds:
    def test_parses_valid_bounds(self):
        bounds = parse_bounds("[156,892][924,1050]")

        assert bounds == Bounds(x1=156, y1=892, x2=924, y2=1050)
        assert bounds.width == 768
        assert bounds.height == 158
        assert bounds.center_x == 540
        assert bounds.center_y == 971

    def test_center_rounds_half_up(self):
        """Odd sums round up, like Math.round on the midpoint."""
        bounds = parse_bounds("[0,0][5,7]")

        assert bounds is not None
        assert bounds.center_x == 3
        assert bounds.center_y == 4

    @pytest.mark.parametrize("value", [None, "", "[1,2][3]", "bounds", "[a,b][c,d]"])
    def test_malformed_bounds_yield_none(self, value):
        assert parse_bounds(value) is None


class TestTruncateText:
    def test_short_text_is_trimmed(self):
        assert truncate_text("  hello ") == "hello"

    def test_blank_text_becomes_none(self):
        assert truncate_text("   ") is None
        assert truncate_text(None) is None

    def test_long_text_is_truncated_with_ellipsis(self):
        result = truncate_text("x" * 60)

        assert result == "x" * 50 + "..."


class TestPruneHierarchy:
    def test_keeps_only_relevant_visible_nodes(self, sample_xml):
        elements = prune_hierarchy(sample_xml)

        assert [e.resource_id for e in elements] == ["com.app:id/title", None, None]
        assert elements[0].text == "Settings"
        assert elements[1].content_desc == "More options"
        assert elements[2].clickable is True

    def test_enabled_defaults_true_unless_false(self, sample_xml):
        elements = prune_hierarchy(sample_xml)

        assert elements[0].enabled is True
        assert elements[1].enabled is False

    def test_class_falls_back_to_tag(self):
        xml = '<hierarchy><android.widget.Button text="OK" bounds="[0,0][10,10]"/></hierarchy>'

        elements = prune_hierarchy(xml)

        assert len(elements) == 1
        assert elements[0].class_name == "android.widget.Button"

    def test_generic_node_without_class_is_unknown(self):
        xml = '<hierarchy><node text="OK" bounds="[0,0][10,10]"/></hierarchy>'

        assert prune_hierarchy(xml)[0].class_name == "unknown"

    def test_unparseable_input_returns_empty_list(self):
        assert prune_hierarchy("<hierarchy><node") == []
        assert prune_hierarchy("not xml at all") == []

    def test_never_emits_long_text(self):
        xml = f'<hierarchy><node text="{"a" * 80}" bounds="[0,0][10,10]"/></hierarchy>'

        element = prune_hierarchy(xml)[0]

        assert element.text is not None
        assert len(element.text) == 53
        assert element.text.endswith("...")


class TestFormatElementsForPrompt:
    def test_empty_list(self):
        assert format_elements_for_prompt([]) == "(No UI elements detected)"

    def test_line_per_element(self):
        elements = [
            PrunedElement(
                resource_id="com.app:id/login_button",
                text="Login",
                class_name="android.widget.Button",
                bounds=Bounds(x1=100, y1=750, x2=980, y2=850),
                clickable=True,
            ),
            PrunedElement(
                content_desc="Menu",
                bounds=Bounds(x1=0, y1=0, x2=10, y2=10),
                enabled=False,
            ),
        ]

        lines = format_elements_for_prompt(elements).split("\n")

        assert lines == [
            '[0] text="Login" id="login_button" class="Button" center=(540,800) clickable',
            '[1] desc="Menu" class="unknown" center=(5,5) disabled',
        ]


class TestLookups:
    @pytest.fixture
    def elements(self):
        return [
            PrunedElement(
                resource_id="com.app:id/username",
                content_desc="Username input",
                bounds=Bounds(x1=100, y1=400, x2=980, y2=500),
                clickable=True,
            ),
            PrunedElement(
                resource_id="com.app:id/login_button",
                text="Login",
                bounds=Bounds(x1=100, y1=750, x2=980, y2=850),
                clickable=True,
            ),
        ]

    def test_resource_id_full_and_short(self, elements):
        assert find_element_by_resource_id(elements, "com.app:id/username") is elements[0]
        assert find_element_by_resource_id(elements, "login_button") is elements[1]
        assert find_element_by_resource_id(elements, "missing") is None

    def test_content_desc_is_exact(self, elements):
        assert find_element_by_content_desc(elements, "Username input") is elements[0]
        assert find_element_by_content_desc(elements, "Username") is None

    def test_text_substring_is_case_insensitive(self, elements):
        assert find_element_by_text(elements, "login") is elements[1]
        assert find_element_by_text(elements, "username") is elements[0]

    def test_text_exact(self, elements):
        assert find_element_by_text(elements, "Login", exact=True) is elements[1]
        assert find_element_by_text(elements, "Log", exact=True) is None

    def test_element_at_point(self, elements):
        assert find_element_at(elements, 540, 800) is elements[1]
        assert find_element_at(elements, 5, 5) is None

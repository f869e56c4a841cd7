"""Tests for node-type and layer classification."""

import pytest

from codemap.classify import classify_layer, classify_node_type, is_test_file


class TestClassifyNodeType:
    @pytest.mark.parametrize(
        "filename, rel_path, content, expected",
        [
            ("test_app.py", "tests/test_app.py", "", "test"),
            ("Button.test.tsx", "src/Button.test.tsx", "export function Button() {}", "test"),
            ("utils.ts", "tests/helpers/utils.ts", "", "test"),
            ("user_test.go", "app/models/user_test.go", "", "test"),
            ("next.config.js", "next.config.js", "", "config"),
            ("settings.py", "proj/settings.py", "", "config"),
            ("users.ts", "src/api/users.ts", "", "api"),
            ("userController.java", "src/userController.java", "", "api"),
            ("authMiddleware.ts", "src/authMiddleware.ts", "", "middleware"),
            ("user.py", "app/models/user.py", "", "model"),
            ("paymentService.ts", "src/paymentService.ts", "", "service"),
            ("useAuth.ts", "src/hooks/useAuth.ts", "", "hook"),
            ("App.vue", "src/App.vue", "", "component"),
            ("strings.go", "pkg/utils/strings.go", "", "util"),
            ("main.go", "cmd/main.go", "", "file"),
        ],
    )
    def test_rules(self, filename, rel_path, content, expected):
        assert classify_node_type(filename, rel_path, content) == expected

    def test_component_by_exported_function(self):
        content = "export default function Button() {\n  return null;\n}\n"
        assert classify_node_type("Button.tsx", "src/components/Button.tsx", content) == "component"

    def test_component_by_exported_const(self):
        content = "export const Card = () => null;\n"
        assert classify_node_type("Card.jsx", "src/Card.jsx", content) == "component"

    def test_component_by_default_class(self):
        content = "export default class Page extends React.Component {}\n"
        assert classify_node_type("Page.tsx", "src/Page.tsx", content) == "component"

    def test_lowercase_export_is_not_component(self):
        content = "export function format() {}\n"
        assert classify_node_type("format.tsx", "src/format.tsx", content) == "file"

    def test_component_export_in_plain_ts_is_not_component(self):
        content = "export const Card = 1;\n"
        assert classify_node_type("card.ts", "src/card.ts", content) == "file"

    def test_use_prefix_needs_capital(self):
        assert classify_node_type("useless.ts", "src/useless.ts", "") == "file"

    def test_hook_needs_js_extension(self):
        assert classify_node_type("useThing.py", "src/useThing.py", "") == "file"

    def test_test_beats_util(self):
        assert classify_node_type("util_test.go", "pkg/util/util_test.go", "") == "test"


class TestIsTestFile:
    def test_spec_dir(self):
        assert is_test_file("user.rb", "spec/models/user.rb")

    def test_java_suffix(self):
        assert is_test_file("UserServiceTest.java", "src/test/java/UserServiceTest.java")

    def test_plain_file(self):
        assert not is_test_file("contest.py", "app/contest.py")


class TestClassifyLayer:
    def test_test_and_config_are_direct(self):
        layer = classify_layer("test", "tests/test_x.py")
        assert (layer.layer, layer.confidence) == ("test", 0.95)
        layer = classify_layer("config", "next.config.js")
        assert (layer.layer, layer.confidence) == ("config", 0.95)

    @pytest.mark.parametrize(
        "rel_path, expected",
        [
            ("src/components/Nav.tsx", "presentation"),
            ("src/services/billing.py", "business"),
            ("src/db/conn.py", "data"),
            ("src/lib/fmt.ts", "infrastructure"),
        ],
    )
    def test_keyword_layers(self, rel_path, expected):
        layer = classify_layer("file", rel_path)
        assert layer.layer == expected
        assert layer.confidence == 0.8

    def test_presentation_checked_before_data(self):
        assert classify_layer("file", "views/models/x.py").layer == "presentation"

    @pytest.mark.parametrize(
        "node_type, rel_path, expected",
        [
            ("service", "src/userRepository.ts", "data"),
            ("file", "src/dbClient.ts", "data"),
            ("file", "src/authService.py", "business"),
        ],
    )
    def test_keyword_in_filename(self, node_type, rel_path, expected):
        layer = classify_layer(node_type, rel_path)
        assert (layer.layer, layer.confidence) == (expected, 0.8)

    def test_short_keyword_needs_whole_word(self):
        assert classify_layer("file", "src/utils/build.ts").layer == "infrastructure"
        assert classify_layer("file", "src/score.ts").layer == "infrastructure"
        assert classify_layer("file", "src/score.ts").confidence == 0.3

    def test_type_fallback(self):
        layer = classify_layer("service", "src/billing.ts")
        assert (layer.layer, layer.confidence) == ("business", 0.6)
        assert classify_layer("model", "src/user.ts").layer == "data"
        assert classify_layer("hook", "src/useX.ts").layer == "presentation"

    def test_default(self):
        layer = classify_layer("file", "src/thing.ts")
        assert (layer.layer, layer.confidence) == ("infrastructure", 0.3)

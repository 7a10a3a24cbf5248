"""Tests for utility functions."""

from mcp_bridge.utils import excerpt, suggest_similar_strings

SERVER_NAMES = ["notion", "notion_local", "n8n", "github", "linear"]


class TestServerNameHints:
    """Test suggest_similar_strings as used for unknown server names."""

    def test_misspelled_server_name(self):
        """Test a transposed-letter typo finds the configured server."""
        suggestions = suggest_similar_strings("notoin", SERVER_NAMES)

        assert suggestions[0] == "notion"

    def test_closest_name_first(self):
        """Test the nearer of two related names is suggested first."""
        suggestions = suggest_similar_strings("notion_locl", SERVER_NAMES)

        assert suggestions[:2] == ["notion_local", "notion"]

    def test_case_of_configured_name_kept(self):
        """Test the configured spelling is returned, not the caller's."""
        suggestions = suggest_similar_strings("github", ["GitHub", "Linear"])

        assert suggestions == ["GitHub"]

    def test_unrelated_name_gets_no_hint(self):
        assert suggest_similar_strings("jira", SERVER_NAMES) == []

    def test_no_servers_configured(self):
        assert suggest_similar_strings("notion", []) == []

    def test_hints_are_capped(self):
        names = ["mcp-a", "mcp-b", "mcp-c", "mcp-d"]

        assert len(suggest_similar_strings("mcp-x", names)) == 3
        assert len(suggest_similar_strings("mcp-x", names, max_results=1)) == 1


class TestExcerpt:
    """Test excerpt function."""

    def test_short_text_unchanged(self):
        assert excerpt("short body") == "short body"

    def test_long_text_trimmed(self):
        """Test long bodies are cut and their length noted."""
        text = "x" * 1200
        trimmed = excerpt(text)

        assert trimmed.startswith("x" * 500)
        assert trimmed.endswith("(1200 chars)")

    def test_custom_limit(self):
        assert excerpt("abcdef", limit=3) == "abc... (6 chars)"

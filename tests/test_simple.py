"""Simple tests (verify pytest working)"""

from unittest import TestCase


class TestPackage(TestCase):

    def test_imports(self):
        """Test that all main imports work"""
        try:
            from mcp_bridge import (
                BridgeService,
                Config,
                CredentialResolver,
                MCPBridgeError,
                MCPClient,
                Pacer,
            )
        except ImportError as e:
            self.fail(e)

"""feishu-channel - Feishu/Lark channel adapter for chat-bot gateways."""

__version__ = "0.1.0"
__logo__ = "🪶"

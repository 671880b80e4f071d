import pytest

from helpers import PNG_B64
from modelmux.types import ImageBlock, Message, TextBlock, ToolResultBlock, ToolUseBlock


@pytest.fixture
def mock_env(monkeypatch):
    """Mock environment variables for API keys."""
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-openai")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test-anthropic")
    monkeypatch.setenv("GOOGLE_API_KEY", "AIza-test-google")
    monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-test-deepseek")
    monkeypatch.setenv("MODELMUX_PROVIDER", "deepseek")
    monkeypatch.delenv("MODELMUX_MODEL", raising=False)


@pytest.fixture
def tool_conversation():
    """A user question, an assistant tool call and the tool's result."""
    return (
        Message(role="user", content="What's the weather in Paris?"),
        Message(
            role="assistant",
            content=(
                TextBlock("Let me check."),
                ToolUseBlock(id="toolu_1", name="get_weather", input={"city": "Paris"}),
            ),
        ),
        Message(
            role="user",
            content=(ToolResultBlock(tool_use_id="toolu_1", content="18C and sunny"),),
        ),
    )


@pytest.fixture
def image_message():
    return Message(
        role="user",
        content=(TextBlock("What is in this image?"), ImageBlock(data=PNG_B64, media_type="image/png")),
    )

"""
Static installation instructions for each supported CLI tool.

Every text carries one "Quick install:" line followed by the single
command the UI offers as copyable.
"""

import re
from typing import Dict, Optional

from ...utils.platform import get_platform
from .models import Tool

QUICK_INSTALL_MARKER = "Quick install:"
_QUICK_INSTALL_RE = re.compile(
    rf"{re.escape(QUICK_INSTALL_MARKER)}[ \t]*\r?\n[ \t]*(?P<command>\S[^\r\n]*?)[ \t]*$",
    re.MULTILINE,
)

_CLAUDE_CODE: Dict[str, str] = {
    "macos": """To install Claude Code, please follow these steps:

1. Open your terminal
2. Quick install:
   npm install -g @anthropic-ai/claude-code

   Alternatively, use the native installer:
   curl -fsSL https://claude.ai/install.sh | bash

3. Verify installation:
   claude --version
4. Log in when prompted on first launch:
   claude
5. Restart this application

After installation, Claude Code will be available in your PATH.""",
    "linux": """To install Claude Code, please follow these steps:

1. Open your terminal
2. Quick install:
   npm install -g @anthropic-ai/claude-code

   Alternatively, use the native installer:
   curl -fsSL https://claude.ai/install.sh | bash

3. Verify installation:
   claude --version
4. Log in when prompted on first launch:
   claude
5. Restart this application

After installation, Claude Code will be available in your PATH.""",
    "windows": """To install Claude Code, please follow these steps:

1. Install Node.js 18 or newer from https://nodejs.org
2. Open PowerShell
3. Quick install:
   npm install -g @anthropic-ai/claude-code

4. Verify installation:
   claude --version
5. Restart this application

Claude Code will be added to your PATH by npm.""",
}

_OLLAMA: Dict[str, str] = {
    "macos": """To install Ollama, please follow these steps:

1. Download Ollama from: https://ollama.com/download
   or
   Quick install:
   brew install ollama

2. Start the Ollama service:
   ollama serve
3. Verify installation:
   ollama --version
   ollama list
4. Pull a model to test:
   ollama pull llama3
5. Restart this application""",
    "linux": """To install Ollama, please follow these steps:

1. Open your terminal
2. Quick install:
   curl -fsSL https://ollama.com/install.sh | sh

3. Start the Ollama service:
   ollama serve

   Or enable it as a system service:
   sudo systemctl enable --now ollama

4. Verify installation:
   ollama --version
   ollama list
5. Pull a model to test:
   ollama pull llama3
6. Restart this application""",
    "windows": """To install Ollama, please follow these steps:

1. Download the installer from: https://ollama.com/download
   or
   Quick install:
   winget install Ollama.Ollama

2. Once installed, Ollama starts automatically
3. Verify installation:
   ollama --version
   ollama list
4. Restart this application""",
}

_GEMINI: Dict[str, str] = {
    "macos": """To install Gemini CLI, please follow these steps:

1. Visit Google AI Studio: https://aistudio.google.com/
2. Generate an API key if you haven't already
3. Quick install:
   npm install -g @google/gemini-cli

4. Configure authentication:
   export GEMINI_API_KEY="your-api-key-here"
   Or add it to your ~/.zshrc
5. Verify installation:
   gemini --version
6. Restart this application""",
    "linux": """To install Gemini CLI, please follow these steps:

1. Visit Google AI Studio: https://aistudio.google.com/
2. Generate an API key if you haven't already
3. Quick install:
   npm install -g @google/gemini-cli

4. Configure authentication:
   export GEMINI_API_KEY="your-api-key-here"
   Or add it to your ~/.bashrc
5. Verify installation:
   gemini --version
6. Restart this application""",
    "windows": """To install Gemini CLI, please follow these steps:

1. Visit Google AI Studio: https://aistudio.google.com/
2. Generate an API key if you haven't already
3. Quick install:
   npm install -g @google/gemini-cli

4. Configure authentication in PowerShell:
   $env:GEMINI_API_KEY="your-api-key-here"
   Or set it permanently in System Environment Variables
5. Verify installation:
   gemini --version
6. Restart this application""",
}

_INSTRUCTIONS = {
    Tool.CLAUDE_CODE: _CLAUDE_CODE,
    Tool.OLLAMA: _OLLAMA,
    Tool.GEMINI: _GEMINI,
}

_DOWNLOAD_PAGES = {
    Tool.CLAUDE_CODE: "https://docs.anthropic.com/en/docs/claude-code",
    Tool.OLLAMA: "https://ollama.com/download",
    Tool.GEMINI: "https://github.com/google-gemini/gemini-cli",
}

_GENERIC_COMMANDS = {
    Tool.CLAUDE_CODE: "npm install -g @anthropic-ai/claude-code",
    Tool.OLLAMA: "curl -fsSL https://ollama.com/install.sh | sh",
    Tool.GEMINI: "npm install -g @google/gemini-cli",
}


def get_instructions(tool: Tool, platform_name: Optional[str] = None) -> str:
    platform_name = platform_name or get_platform()
    texts = _INSTRUCTIONS[tool]
    if platform_name in texts:
        return texts[platform_name]
    return (
        f"Please visit {_DOWNLOAD_PAGES[tool]} for {tool.display_name} "
        "installation instructions for your operating system.\n\n"
        f"Quick install:\n   {_GENERIC_COMMANDS[tool]}"
    )


def extract_quick_install_command(text: str) -> Optional[str]:
    match = _QUICK_INSTALL_RE.search(text)
    if match is None:
        return None
    return match.group("command")

"""Planner and coder stages with a model fallback ladder."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from abc import ABC, abstractmethod
from typing import Protocol

from warpshell.agent.heuristics import fallback_command, fallback_plan
from warpshell.config import ModelSpec
from warpshell.llm.client import GenerationError, OllamaClient, TextGenerator

LOGGER = logging.getLogger(__name__)

PLANNER_TEMPLATE = """You are a planning agent that converts natural language requests into clear, structured plans.

Your role:
1. Analyze the user's request and understand their intent
2. Break down complex requests into logical steps
3. Identify the tools, technologies, and actions needed
4. Output a concise plan in plain English

Guidelines:
- Be specific about what needs to be done
- Include key details like project names, technologies, or configurations
- Keep plans actionable and clear
- Focus on the "what" rather than the "how"

Examples:
Input: "create a new React app and start the dev server"
Output: "Create a new React project using Vite, install dependencies, and start the development server"

Input: "show me all running Docker containers and their status"
Output: "List all currently running Docker containers with their status information"

Input: "backup my database and compress it"
Output: "Create a database backup, compress the backup file, and save it to a secure location"
"""

CODER_TEMPLATE = """You are a coding agent that converts structured plans into precise shell commands.

Your role:
1. Translate plans into executable shell commands
2. Use modern, cross-platform tools when possible
3. Chain commands efficiently with && or ;
4. Ensure commands are safe and follow common conventions
5. Output ONLY the command(s), no explanations

Guidelines:
- Use modern tools (npm/yarn, git, docker, etc.)
- Prefer single-line command chains when logical
- Include necessary flags and options
- Work on Windows (PowerShell), macOS, and Linux

Examples:
Plan: "Create a new React project using Vite, install dependencies, and start the development server"
Command: npm create vite@latest my-react-app -- --template react && cd my-react-app && npm install && npm run dev

Plan: "List all currently running Docker containers with their status information"
Command: docker ps -a --format "table {{.Names}}\\t{{.Status}}\\t{{.Ports}}"

Plan: "Create a database backup, compress the backup file, and save it to a secure location"
Command: mysqldump -u root -p mydb > backup.sql && gzip backup.sql && mv backup.sql.gz ~/backups/
"""

_CODE_FENCE = re.compile(r"^```[\w-]*\s*\n(?P<body>.*?)\n?```$", re.DOTALL)


class GenerationProvider(Protocol):
    name: str

    def generate(self, prompt: str) -> str: ...


@dataclass(slots=True)
class ModelProvider:
    """A named model reachable through a shared text generator."""

    generator: TextGenerator
    model: str

    @property
    def name(self) -> str:
        return self.model

    def generate(self, prompt: str) -> str:
        text = self.generator.generate(self.model, prompt).strip()
        if not text:
            msg = f"Model {self.model} returned an empty response"
            raise GenerationError(msg)
        return text


class GenerationStage(ABC):
    """Try each provider once in order, then fall back to an offline heuristic.

    Subclasses supply the prompt template and the default heuristic; a
    ``heuristic`` passed to the constructor replaces it.
    """

    role = "stage"
    template = ""
    input_label = "Input"
    output_label = "Output"

    def __init__(
        self,
        providers: Sequence[GenerationProvider],
        heuristic: Callable[[str], str] | None = None,
    ) -> None:
        self.providers = list(providers)
        self.heuristic = heuristic or self.fallback

    @classmethod
    def from_model_spec(
        cls, spec: ModelSpec, generator: TextGenerator | None = None
    ) -> GenerationStage:
        """Primary then fallback model; without a generator, talk to ``spec.backend_host``."""
        if generator is None:
            generator = OllamaClient(host=spec.backend_host, timeout=spec.timeout)
        return cls(
            [
                ModelProvider(generator, spec.primary_name),
                ModelProvider(generator, spec.fallback_name),
            ]
        )

    @abstractmethod
    def fallback(self, text: str) -> str:
        """Offline answer used when every provider failed."""

    def build_prompt(self, text: str) -> str:
        return f"{self.template}\n\n{self.input_label}: {text}\n{self.output_label}:"

    def generate(self, text: str) -> str:
        prompt = self.build_prompt(text)
        for provider in self.providers:
            try:
                response = self.postprocess(provider.generate(prompt))
            except GenerationError as exc:
                LOGGER.info(
                    "generation_failed",
                    extra={"stage": self.role, "model": provider.name, "error": str(exc)},
                )
                continue
            if response:
                LOGGER.debug(
                    "generation_succeeded",
                    extra={"stage": self.role, "model": provider.name},
                )
                return response
        LOGGER.info("generation_heuristic_fallback", extra={"stage": self.role})
        return self.heuristic(text)

    def postprocess(self, response: str) -> str:
        return response.strip()


class PlannerStage(GenerationStage):
    role = "planner"
    template = PLANNER_TEMPLATE
    input_label = "User Request"
    output_label = "Plan"

    def fallback(self, text: str) -> str:
        return fallback_plan(text)


class CoderStage(GenerationStage):
    role = "coder"
    template = CODER_TEMPLATE
    input_label = "Plan"
    output_label = "Command"

    def fallback(self, text: str) -> str:
        return fallback_command(text)

    def postprocess(self, response: str) -> str:
        stripped = response.strip()
        fenced = _CODE_FENCE.match(stripped)
        if fenced:
            return fenced.group("body").strip()
        return stripped

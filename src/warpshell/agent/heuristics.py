"""Offline keyword fallbacks used when no model can answer."""

from __future__ import annotations

KeywordRule = tuple[tuple[str, ...], str]

PLAN_RULES: tuple[KeywordRule, ...] = (
    (
        ("react", "app"),
        "Create a new React application with modern tooling and start the development server",
    ),
    (("docker", "container"), "List and inspect Docker containers with their current status"),
    (("git", "repo"), "Initialize or manage Git repository with version control operations"),
    (("install",), "Install the specified software package or dependency"),
    (("backup",), "Create a backup of the specified data or files"),
    (("test",), "Run tests for the current project or specified component"),
)

COMMAND_RULES: tuple[KeywordRule, ...] = (
    (
        ("react", "vite"),
        "npm create vite@latest my-app -- --template react && cd my-app && npm install"
        " && npm run dev",
    ),
    (
        ("react", "app"),
        "npm create vite@latest my-app -- --template react && cd my-app && npm install"
        " && npm run dev",
    ),
    (("docker", "container"), "docker ps -a"),
    (("git", "repo"), "git init && git add . && git commit -m 'Initial commit'"),
    (("install", "npm"), "npm install"),
    (("backup", "database"), "mysqldump -u root -p mydb > backup.sql"),
    (("test",), "npm test"),
    (("build",), "npm run build"),
)


def _match(text: str, rules: tuple[KeywordRule, ...]) -> str | None:
    lowered = text.lower()
    for keywords, answer in rules:
        if all(keyword in lowered for keyword in keywords):
            return answer
    return None


def fallback_plan(request: str) -> str:
    return _match(request, PLAN_RULES) or f"Execute the requested operation: {request}"


def fallback_command(plan: str) -> str:
    matched = _match(plan, COMMAND_RULES)
    if matched:
        return matched
    # Single quotes are dropped so the echo stays valid in bash and PowerShell.
    quoted_plan = plan.replace("'", "")
    return f"echo 'Executing: {quoted_plan}'"

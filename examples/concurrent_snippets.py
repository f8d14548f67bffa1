"""
Simulation of a code-playground backend using phpsandbox.

Several users submit PHP snippets at once. The sandbox runs at most
``max_concurrency`` containers at a time; the rest wait their turn.
Broken and runaway snippets come back as results, never as exceptions.
"""

import asyncio
from dataclasses import dataclass

from phpsandbox import CodeSnippet, SandboxSettings, create_sandbox


@dataclass
class Submission:
    user: str
    snippet: CodeSnippet


SUBMISSIONS = [
    Submission("alice", CodeSnippet("echo 5 + 7;")),
    Submission("bob", CodeSnippet("<?php foreach (range(1, 3) as $i) { echo $i, PHP_EOL; } ?>")),
    # Syntax error, reported as the interpreter's own exit code
    Submission("carol", CodeSnippet("echo 'missing semicolon'")),
    # Slower than the user asked for: flagged after the fact
    Submission("dave", CodeSnippet("usleep(300000); echo 'done';", timeout=0.1)),
    # Runaway loop: killed by the hard timeout
    Submission("eve", CodeSnippet("while (true) {}")),
    # Network is disabled inside the container
    Submission("mallory", CodeSnippet("echo @file_get_contents('http://example.com') === false ? 'blocked' : 'leak';")),
]


async def main():
    settings = SandboxSettings(max_concurrency=2, max_execution_time=3.0)

    async with create_sandbox(settings) as sandbox:
        results = await asyncio.gather(
            *(sandbox.execute(submission.snippet) for submission in SUBMISSIONS)
        )

    for submission, result in zip(SUBMISSIONS, results):
        print(f"👤 {submission.user} (exit {result.exit_code}, {result.duration_ms} ms)")
        if result.stdout:
            print(f"  stdout: {result.stdout.splitlines()[0]}")
        if result.stderr:
            print(f"  stderr: {result.stderr.splitlines()[0]}")
        if result.failure:
            print(f"  🛡️ sandbox: {result.failure.value}")
        print("-" * 50)


if __name__ == "__main__":
    asyncio.run(main())

"""
O3 MCP provider: technical search over an HTTP endpoint.

Without a configured endpoint (or when the endpoint answers 404) the search
is simulated so the command still produces a useful, recorded answer.
"""

import json
import os
import time
from typing import Any, Optional

import httpx
import typer

from uai.errors import ProviderError
from uai.logger import get_logger
from uai.providers.base import Provider

logger = get_logger(__name__)

REQUEST_TIMEOUT_S = 30.0
SIMULATION_DELAY_S = 1.5
FORMATS = ("text", "json", "markdown")


def simulated_results(query: str) -> dict[str, Any]:
    """Canned results keyed on a few topic keywords."""
    lower = query.lower()
    if "react" in lower:
        results = [
            {
                "title": "New in React 19: Actions and the use() API",
                "source": "React Blog",
                "date": "2024-12-15",
                "summary": "React 19 introduces Actions to simplify form handling "
                "and the use() API for working with async resources.",
            },
            {
                "title": "A practical guide to React Server Components",
                "source": "Vercel Blog",
                "date": "2024-12-10",
                "summary": "RSC lets you balance server-side rendering with "
                "client-side interactivity.",
            },
        ]
        related = [
            "React Compiler",
            "Next.js 15",
            "Suspense improvements",
            "React Native New Architecture",
        ]
    elif "ai" in lower or "llm" in lower:
        results = [
            {
                "title": "Claude 3.5 Sonnet: state-of-the-art coding ability",
                "source": "Anthropic Research",
                "date": "2024-12-20",
                "summary": "Stronger code understanding and generation for "
                "complex projects.",
            },
            {
                "title": "Optimizing development workflows with LLMs",
                "source": "GitHub Blog",
                "date": "2024-12-18",
                "summary": "Combining assistants such as Copilot and Claude Code "
                "can speed up development considerably.",
            },
        ]
        related = [
            "MCP (Model Context Protocol)",
            "AI-powered IDE extensions",
            "Prompt engineering best practices",
            "LLM fine-tuning techniques",
        ]
    else:
        results = [
            {
                "title": f"Latest trends in {query}",
                "source": "Tech News",
                "date": "2024-12-25",
                "summary": f"New approaches to {query} are being discussed "
                "across the industry.",
            },
            {
                "title": f"{query} best practices",
                "source": "Developer Community",
                "date": "2024-12-23",
                "summary": f"Practical guidelines for using {query} effectively "
                "have been published.",
            },
        ]
        related = [
            f"{query} tutorials",
            f"{query} documentation",
            f"{query} community",
            f"{query} alternatives",
        ]
    return {"query": query, "results": results, "relatedTopics": related}


class O3MCPProvider(Provider):
    tool = "o3-mcp"

    @property
    def endpoint(self) -> Optional[str]:
        return self.config.config.o3.endpoint or os.getenv("O3_MCP_ENDPOINT")

    @property
    def api_key(self) -> Optional[str]:
        return self.config.config.o3.api_key or os.getenv("O3_MCP_API_KEY")

    def search(
        self,
        query: str,
        output_format: str = "markdown",
        max_results: int = 10,
        include_context: bool = True,
    ) -> None:
        """
        Search for technical information and record the exchange.

        Raises:
            ProviderError: If the endpoint fails with anything other than 404.
        """
        session_id = self.open_session()
        try:
            endpoint = self.endpoint
            if not endpoint:
                self._simulate(query, output_format, session_id)
                return

            typer.secho("🔍 Searching with O3 MCP...", dim=True)
            try:
                resp = httpx.post(
                    f"{endpoint.rstrip('/')}/search",
                    json={
                        "query": query,
                        "format": output_format,
                        "maxResults": max_results,
                        "includeContext": include_context,
                    },
                    headers={"Authorization": f"Bearer {self.api_key or ''}"},
                    timeout=REQUEST_TIMEOUT_S,
                )
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 404:
                    logger.info("O3 MCP endpoint returned 404, simulating")
                    self._simulate(query, output_format, session_id)
                    return
                raise ProviderError(f"O3 MCP error: {e.response.status_code}") from e
            except httpx.HTTPError as e:
                logger.error(f"O3 MCP request failed: {e}")
                raise ProviderError(f"O3 MCP request failed: {e}") from e

            try:
                data = resp.json()
            except ValueError:
                data = resp.text
            self.display(data, output_format)
            self.record(session_id, query, json.dumps(data, ensure_ascii=False))
        finally:
            self.close_session(session_id)

    def _simulate(self, query: str, output_format: str, session_id: str) -> None:
        typer.secho(
            "⚠️  O3 MCP not configured - running in simulation mode\n",
            fg=typer.colors.YELLOW,
        )
        time.sleep(SIMULATION_DELAY_S)
        results = simulated_results(query)

        if output_format == "json":
            typer.echo(json.dumps(results, indent=2, ensure_ascii=False))
        else:
            typer.secho(f'\n🔍 Results for "{query}":\n', fg=typer.colors.GREEN)
            for item in results["results"]:
                typer.secho(f"📄 {item['title']}", fg=typer.colors.BLUE)
                typer.secho(f"   {item['source']} - {item['date']}", dim=True)
                typer.echo(f"   {item['summary']}\n")

            typer.secho("\n💡 Related topics:", fg=typer.colors.CYAN)
            for topic in results["relatedTopics"]:
                typer.secho(f"  • {topic}", dim=True)

            typer.secho("\n📝 Suggested actions:", fg=typer.colors.YELLOW)
            typer.secho("  1. Check the official documentation", dim=True)
            typer.secho("  2. Follow the latest discussions on GitHub", dim=True)
            typer.secho("  3. Try it out in code", dim=True)

        self.record(session_id, query, json.dumps(results, ensure_ascii=False))

    @staticmethod
    def display(data: Any, output_format: str) -> None:
        if output_format == "json":
            typer.echo(json.dumps(data, indent=2, ensure_ascii=False))
        elif output_format == "text":
            text = data.get("text") if isinstance(data, dict) else None
            typer.echo(text or data)
        elif isinstance(data, str):
            typer.echo(data)
        else:
            typer.secho("\n🔍 Search results:\n", fg=typer.colors.GREEN)
            content = data.get("content") if isinstance(data, dict) else None
            typer.echo(content or json.dumps(data, indent=2, ensure_ascii=False))

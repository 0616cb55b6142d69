"""Workflow generation through the OpenAI chat API."""

import json
from typing import Any, Dict, Optional

import openai
import structlog

from pumpflix.config import settings
from pumpflix.exceptions import ConfigurationError, PumpFlixException

logger = structlog.get_logger()

SYSTEM_PROMPT = """You are an expert workflow automation specialist. Generate a workflow for the user's description.
Return only a JSON object with this structure:
{
  "nodes": [
    {
      "id": string,
      "type": "trigger" | "action",
      "name": string,
      "description": string,
      "position": {"x": number, "y": number},
      "data": {"service": string, "action": string, "config": object}
    }
  ],
  "edges": [
    {"id": string, "source": string, "target": string, "animated": boolean}
  ]
}"""


class GenerationError(PumpFlixException):
    """Raised when the model does not return a usable workflow."""
    status_code = 502
    error = "Failed to generate workflow"


def parse_workflow(content: Optional[str]) -> Dict[str, Any]:
    """Parse a model reply into a workflow graph."""
    if not content:
        raise GenerationError("The model returned an empty response")

    text = content.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.startswith("json"):
            text = text[4:]

    try:
        workflow = json.loads(text)
    except json.JSONDecodeError as e:
        raise GenerationError("The model response is not valid JSON") from e

    if (
        not isinstance(workflow, dict)
        or not isinstance(workflow.get("nodes"), list)
        or not isinstance(workflow.get("edges"), list)
    ):
        raise GenerationError("Invalid workflow structure generated")
    return workflow


class WorkflowGenerator:
    """Turn a natural-language description into a workflow graph."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        api_key = api_key or settings.openai_api_key
        if not api_key:
            raise ConfigurationError("OpenAI is not configured")
        self.model = model or settings.openai_model
        self.client = openai.AsyncOpenAI(api_key=api_key)

    async def generate(self, prompt: str) -> Dict[str, Any]:
        """Ask the model for a workflow and validate its structure."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.7,
                max_tokens=2000,
            )
        except openai.OpenAIError as e:
            logger.error("OpenAI chat completion error", error=str(e))
            raise GenerationError(str(e)) from e

        workflow = parse_workflow(response.choices[0].message.content if response.choices else None)

        logger.info(
            "Workflow generated",
            model=self.model,
            node_count=len(workflow["nodes"]),
            edge_count=len(workflow["edges"]),
        )
        return workflow


def get_workflow_generator() -> WorkflowGenerator:
    """FastAPI dependency for the workflow generator."""
    return WorkflowGenerator()

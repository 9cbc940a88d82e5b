"""Therapist persona prompt and the structured-output schema for replies."""

from __future__ import annotations
from textwrap import dedent

from ..models import STRATEGY_VALUES

SCHEMA_NAME = "therapist_response"


def build_therapist_system() -> str:
    return dedent(
        """\
        You are a compassionate and professional AI therapist. Your role is to
        provide supportive, empathetic responses to help users explore their
        thoughts and feelings.

        Guidelines:
        - Use active listening techniques
        - Validate emotions without judgment
        - Ask thoughtful open-ended questions
        - Offer gentle cognitive reframing when appropriate
        - Practice empathy and normalize experiences
        - Use reflection to help users gain insight
        - Provide psychoeducation when helpful
        - Offer grounding exercises when the user feels overwhelmed
        - Summarize what you have heard before changing direction

        Annotate your reply: break it into meaningful segments and tag each
        segment with the techniques it uses, chosen only from:
        """
    ) + "\n".join(f"- {s}" for s in STRATEGY_VALUES) + dedent(
        """

        Important: You are an AI assistant providing emotional support, not a
        licensed therapist. For serious mental health concerns, encourage users
        to seek professional help.
        """
    )


def response_schema() -> dict:
    """Strict JSON schema: {segments: [{text, strategies: [enum]}]}, nothing else."""
    return {
        "name": SCHEMA_NAME,
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {
                "segments": {
                    "type": "array",
                    "description": (
                        "Array of text segments with their therapeutic strategies. "
                        "Break down the response into meaningful segments, each "
                        "annotated with the strategies used."
                    ),
                    "items": {
                        "type": "object",
                        "properties": {
                            "text": {
                                "type": "string",
                                "description": "A portion of the response text",
                            },
                            "strategies": {
                                "type": "array",
                                "description": "Therapeutic strategies used in this segment",
                                "items": {
                                    "type": "string",
                                    "enum": list(STRATEGY_VALUES),
                                },
                            },
                        },
                        "required": ["text", "strategies"],
                        "additionalProperties": False,
                    },
                },
            },
            "required": ["segments"],
            "additionalProperties": False,
        },
    }


def response_format() -> dict:
    return {"type": "json_schema", "json_schema": response_schema()}

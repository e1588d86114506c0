"""Prompt construction for command suggestions and the final analysis."""

from __future__ import annotations

import re

import structlog

from kubelens.config import Config, DomainPrompt

logger = structlog.get_logger(__name__)


def match_domain_prompts(config: Config, query: str) -> list[DomainPrompt]:
    """Return the topic extensions whose pattern matches the question."""
    lowered = query.lower()
    matched = []
    for domain in config.domain_prompts:
        try:
            if re.search(domain.pattern, lowered):
                matched.append(domain)
        except re.error as e:
            logger.warning("Invalid domain prompt pattern", name=domain.name, error=str(e))
    return matched


def _command_list(config: Config, commands: list[str]) -> str:
    return ", ".join(f"{config.diagnostic_verb} {command}" for command in commands)


def build_suggestion_prompt(config: Config, query: str, turn_index: int = 1) -> str:
    """Build the prompt that asks the LLM for diagnostic commands.

    The first turn uses the full start prompt; later turns use the condensed
    one since the model has already seen the instructions. Matched topic
    extensions add their own instructions and commands. The default command
    reference is included unless every matched topic replaces it.

    Args:
        config: Loaded configuration
        query: The user's question
        turn_index: 1-based count of user questions in the session

    Returns:
        The complete suggestion prompt
    """
    if turn_index > 1:
        prompt = config.suggestion_short_prompt
    else:
        prompt = config.suggestion_start_prompt

    use_default_commands = True
    for domain in match_domain_prompts(config, query):
        prompt += "\n" + domain.prompt.strip()
        if domain.commands and not domain.use_default_commands:
            prompt += "\n\nRelevant commands for this scenario: " + _command_list(config, domain.commands)
            use_default_commands = False
        elif domain.commands:
            prompt += "\n\nAlso consider: " + _command_list(config, domain.commands)

    if use_default_commands:
        prompt += "\n\nCommand reference: " + _command_list(config, config.allowed_commands)

    prompt += config.suggestion_format_prompt
    prompt += "\n\nIssue description: " + query
    prompt += "\n\nProvide commands as a plain list without descriptions or backticks."
    if config.max_suggestions > 0:
        prompt += f" Limit to at most {config.max_suggestions} lines."
    return prompt


def build_analysis_prompt(config: Config, context: str, query: str) -> str:
    """Wrap aggregated command output in the analysis template."""
    return config.analysis_prompt.format(
        context=context,
        query=query,
        output_format=config.get_output_format_prompt(),
    )

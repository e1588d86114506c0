"""
Configuration management for kubelens.

Implements multi-level configuration loading with precedence:
1. Environment variables (highest priority)
2. Project config (./.kubelens/config.yaml)
3. User config (~/.kubelens/config.yaml)
4. System config (/etc/kubelens/config.yaml)
"""

from pathlib import Path
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, YamlConfigSettingsSource, PydanticBaseSettingsSource

from kubelens.context import TokenBudget
from kubelens.enums import BaselineLevel


# Environment variable holding extra deny-list entries (comma-separated).
# Read on every batch, not at config load time.
BLOCKED_COMMANDS_EXTRA_ENV = "KUBELENS_BLOCKED_CMDS_EXTRA"


DEFAULT_ALLOWED_COMMANDS = [
    "get", "get -A",
    "describe",
    "logs", "logs --tail 10",
    "top",
    "explain",
    "cluster-info",
    "api-resources",
    "events",
    "auth can-i",
    "api-versions",
    "rollout status deployment",
    "--all-namespaces",
]

DEFAULT_BLOCKED_COMMANDS = [
    "delete", "apply", "edit", "patch", "create", "replace", "set", "scale",
    "autoscale", "expose", "annotate", "label", "convert", "exec",
    "port-forward", "proxy", "run", "wait", "cordon", "uncordon", "drain",
    "attach", "config", "cp", "rm", "mv",
]

DEFAULT_SUGGESTION_START_PROMPT = """You are an expert Kubernetes administrator specializing in cluster diagnostics.

Task: Analyze the user's issue and provide appropriate kubectl commands for diagnostics.

## Guidelines:
- Provide only safe, read-only commands that will not modify cluster state
- Commands should be specific and target the exact resources relevant to the issue
- Focus on commands that provide the most useful diagnostic information
- Include namespace flags where appropriate (-n or --all-namespaces/-A)
- Prefer commands that give comprehensive information (e.g., -o wide, --show-labels)
"""

DEFAULT_SUGGESTION_SHORT_PROMPT = (
    "As a Kubernetes expert, based on your previous response, provide only the "
    "essential and safe read-only kubectl commands to help diagnose the following issue"
)

DEFAULT_SUGGESTION_FORMAT_PROMPT = """
## Output format:
- Return one full command per line, each starting with "kubectl "
- Use only actual resource names in the cluster; do not use placeholders like <namespace>
- Never include destructive commands that modify cluster state
- Prefer the most information-dense variants (e.g., -o wide, --show-labels)
"""

DEFAULT_ANALYSIS_PROMPT = """# Kubernetes Diagnostic Analysis

## Command Outputs
{context}

## Task
{query}

## Guidelines
- You are an experienced Kubernetes administrator with deep expertise in diagnostics
- Analyze the command outputs above and provide insights on the issue
- Identify potential problems or anomalies in the cluster state
- Support claims with concrete evidence from the command outputs
- Be concise and prioritize highest-impact findings first
- Suggest next steps or additional commands if needed
- {output_format}
"""

DEFAULT_MARKDOWN_FORMAT_PROMPT = (
    "Format your response using Markdown, including headings, lists, and code "
    "blocks for improved readability in a terminal environment."
)

DEFAULT_PLAIN_FORMAT_PROMPT = (
    "Provide a clear, concise analysis that is easy to read in a terminal environment."
)


class DomainPrompt(BaseModel):
    """Prompt extension applied when the user's question matches a topic.

    Attributes:
        name: Short topic name, used in logs
        pattern: Regular expression matched against the lower-cased question
        prompt: Extra instructions appended to the suggestion prompt
        commands: kubectl sub-commands relevant to the topic
        use_default_commands: Keep the default command reference alongside
            the topic commands
    """

    name: str
    pattern: str
    prompt: str
    commands: List[str] = Field(default_factory=list)
    use_default_commands: bool = True


def default_domain_prompts() -> List[DomainPrompt]:
    """Built-in topic extensions for the suggestion prompt."""
    return [
        DomainPrompt(
            name="errors",
            pattern=r"\b(error|fail|crash|exception|debug|warn|issue|problem|trouble|fault|bug)s?\b",
            prompt="Focus on diagnostics, particularly for error logs and status checks.",
        ),
        DomainPrompt(
            name="performance",
            pattern=r"\b(performance|perf|slow|cpu|memory|latency|throughput|bandwidth|speed|load)s?\b",
            prompt="Include commands to assess resource usage and performance metrics.",
            commands=["top pod", "top node"],
            use_default_commands=False,
        ),
        DomainPrompt(
            name="logs",
            pattern=r"\b(log|logging|trace|tracing|audit|auditing|event|history|record)s?\b",
            prompt="Include commands to view logs and audit events.",
            commands=["logs -l", "logs --all-containers=true", "logs daemonset/", "logs job/", "logs cronjob/"],
            use_default_commands=False,
        ),
        DomainPrompt(
            name="deployments",
            pattern=r"\b(deployment|replica|scale|scaling|rolling|rollout|restart|recreate|rollback)s?\b",
            prompt="Include commands to analyze deployments, rollouts and replicas.",
            commands=[
                "get deployment",
                "describe deployment",
                "get pods -l",
                "get pods -o wide",
                "get deployments --all-namespaces -o wide",
                "get replicasets -A",
                "get daemonsets -A",
                "get statefulsets -A",
                "rollout status deployment",
            ],
            use_default_commands=False,
        ),
        DomainPrompt(
            name="gateways",
            pattern=r"\b(gateway|route|httproute)s?\b",
            prompt="Include commands to analyze Kubernetes gateways and routes.",
            commands=["get gateway -A", "get gatewayclasses -A", "get httproute -A", "describe gateway"],
        ),
        DomainPrompt(
            name="ingress",
            pattern=r"\b(ingress|ingressclass|ingressroute)s?\b",
            prompt="Include commands to analyze Ingress resources.",
            commands=["get ingress", "get ingress -A", "get ingressclass -A", "describe ingress", "get service"],
            use_default_commands=False,
        ),
        DomainPrompt(
            name="hpa",
            pattern=r"\b(hpa|horizontal pod autoscaler)s?\b",
            prompt="Include commands to analyze Horizontal Pod Autoscalers.",
            commands=["get hpa -A", "describe hpa"],
        ),
        DomainPrompt(
            name="services",
            pattern=r"\b(service|svc)s?\b",
            prompt="Include commands to analyze services.",
            commands=["get service", "get service -o wide -A", "describe service"],
        ),
        DomainPrompt(
            name="storage",
            pattern=r"\b(pv|pvc|storage|volume|persistent|claim|disk|space)s?\b",
            prompt="Include commands to analyze storage and volumes.",
            commands=["get pv", "get pvc", "get pv -A", "get pvc -A", "describe pv", "describe pvc"],
            use_default_commands=False,
        ),
        DomainPrompt(
            name="network",
            pattern=r"\b(network|networking|subnet|cidr|ip|firewall|policy|egress|loadbalancer|lb|endpoint|dns|port|tcp|udp|tls|certificate|cert)s?\b",
            prompt="Include commands to analyze network resources and connectivity.",
            commands=[
                "get networkpolicy",
                "get networkpolicy -A -o wide",
                "describe networkpolicy",
                "get endpoints -A",
                "get endpoints -A -o wide",
                "describe endpoints",
                "get service -A -o wide",
            ],
            use_default_commands=False,
        ),
        DomainPrompt(
            name="rbac",
            pattern=r"\b(rbac|role|clusterrole|rolebinding|clusterrolebinding|permission|access|authorization|auth)s?\b",
            prompt="Include commands to analyze roles and permissions.",
            commands=[
                "auth can-i",
                "auth can-i -A",
                "get role -A",
                "get clusterrole",
                "get rolebinding -A",
                "get clusterrolebinding",
                "describe role",
                "describe clusterrole",
                "describe rolebinding",
                "describe clusterrolebinding",
            ],
            use_default_commands=False,
        ),
    ]


class Config(BaseSettings):
    """Complete configuration schema for kubelens with flat structure."""

    model_config = SettingsConfigDict(
        # Load from .env files in order of precedence (lowest to highest)
        env_file=[
            ".env",  # Project-specific
            str(Path.home() / ".kubelens" / ".env"),  # User-specific
        ],
        # Load from YAML files in order of precedence (lowest to highest)
        yaml_file=[
            "/etc/kubelens/config.yaml",  # System-wide
            str(Path.home() / ".kubelens" / "config.yaml"),  # User-specific
            str(Path.cwd() / ".kubelens" / "config.yaml"),  # Project-specific
        ],
        env_prefix="KUBELENS_",
        env_nested_delimiter="__",
        case_sensitive=False,
        # Ignore extra fields (like OPENAI_API_KEY that aren't part of config schema)
        extra="ignore",
        env_file_encoding="utf-8",
    )

    # =================================================================
    # LLM Configuration (flat)
    # =================================================================

    llm_model: str = Field(default="gpt-4o-mini", description="Model used for suggestions and answers")
    llm_base_url: Optional[str] = Field(default=None, description="Base URL for OpenAI-compatible API")
    llm_api_key_env: str = Field(default="OPENAI_API_KEY", description="Environment variable holding the API key")
    llm_timeout_seconds: int = Field(default=60, ge=1, description="Timeout for LLM requests in seconds")
    llm_max_retries: int = Field(default=3, ge=0, description="Retries for rate-limited or timed out LLM requests")

    # =================================================================
    # Command Execution Configuration (flat)
    # =================================================================

    diagnostic_verb: str = Field(default="kubectl", description="Leading word of diagnostic commands")
    kubectl_binary: str = Field(default="kubectl", description="Binary substituted for the diagnostic verb")
    shell_prefix: str = Field(default="$", description="Prefix marking operator-issued shell commands")
    allowed_commands: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_COMMANDS),
        description="kubectl sub-commands the LLM may suggest"
    )
    blocked_commands: List[str] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_COMMANDS),
        description="kubectl sub-commands that are never executed"
    )
    command_timeout_seconds: int = Field(default=30, ge=1, description="Per-command timeout in seconds")
    safe_mode: bool = Field(default=False, description="Confirm each batch and run commands sequentially")

    # =================================================================
    # Retrieval Configuration (flat)
    # =================================================================

    retries: int = Field(default=3, ge=0, description="Suggestion attempts per question")
    max_suggestions: int = Field(default=12, ge=0, description="Maximum suggested commands per attempt (0 = no cap)")
    disable_secret_filter: bool = Field(default=False, description="Skip redaction of command output")
    domain_prompts: List[DomainPrompt] = Field(
        default_factory=default_domain_prompts,
        description="Topic-specific extensions for the suggestion prompt"
    )
    enable_baseline: bool = Field(default=True, description="Run a curated read-only batch on the first question")
    baseline_level: BaselineLevel = Field(default=BaselineLevel.MINIMAL, description="minimal, standard or comprehensive")
    baseline_include_metrics: bool = Field(default=True, description="Add metrics API queries to the comprehensive baseline")

    # =================================================================
    # Token Budget Configuration (flat)
    # =================================================================

    max_tokens: int = Field(default=16000, ge=1, description="Context window size in tokens")
    input_token_reserve_percent: int = Field(default=20, ge=0, le=100, description="Share of the window reserved for input")
    min_input_token_reserve: int = Field(default=1024, ge=0, description="Minimum tokens reserved for input")
    min_output_tokens: int = Field(default=512, ge=1, description="Minimum tokens left for the answer")

    # =================================================================
    # Prompt Templates (flat)
    # =================================================================

    markdown_output: bool = Field(default=True, description="Ask for Markdown formatted answers")
    suggestion_start_prompt: str = Field(default=DEFAULT_SUGGESTION_START_PROMPT)
    suggestion_short_prompt: str = Field(default=DEFAULT_SUGGESTION_SHORT_PROMPT)
    suggestion_format_prompt: str = Field(default=DEFAULT_SUGGESTION_FORMAT_PROMPT)
    analysis_prompt: str = Field(
        default=DEFAULT_ANALYSIS_PROMPT,
        description="Template with {context}, {query} and {output_format} fields"
    )
    markdown_format_prompt: str = Field(default=DEFAULT_MARKDOWN_FORMAT_PROMPT)
    plain_format_prompt: str = Field(default=DEFAULT_PLAIN_FORMAT_PROMPT)

    @field_validator("baseline_level", mode="before")
    @classmethod
    def _normalize_baseline_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() or BaselineLevel.MINIMAL.value
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to include YAML support."""
        yaml_settings = YamlConfigSettingsSource(settings_cls)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            yaml_settings,
            file_secret_settings,
        )

    def get_token_budget(self) -> TokenBudget:
        """Get the token budget derived from the context window settings."""
        return TokenBudget(
            limit=self.max_tokens,
            input_reserve_percent=self.input_token_reserve_percent,
            min_input_reserve=self.min_input_token_reserve,
            min_output_tokens=self.min_output_tokens,
        )

    def get_output_format_prompt(self) -> str:
        """Get the answer formatting instruction for the analysis template."""
        return self.markdown_format_prompt if self.markdown_output else self.plain_format_prompt


def load_config(**overrides: Any) -> Config:
    """
    Load configuration from all sources with proper precedence.

    Precedence (highest to lowest):
    0. Keyword overrides (e.g. from CLI flags)
    1. Environment variables (KUBELENS_*)
    2. .env files (./.env, ~/.kubelens/.env)
    3. Project config (./.kubelens/config.yaml)
    4. User config (~/.kubelens/config.yaml)
    5. System config (/etc/kubelens/config.yaml)
    6. Default values

    Returns:
        Config: The loaded and validated configuration

    Examples:
        Environment variable override:
        # export KUBELENS_COMMAND_TIMEOUT_SECONDS=60
        >>> config = load_config()
        >>> print(config.command_timeout_seconds)
        60

        List values are read from JSON:
        # export KUBELENS_BLOCKED_COMMANDS='["delete", "apply"]'
    """
    return Config(**overrides)

"""
Prompt loader utility for the fixed processing-mode templates.

Each mode that uses a fixed instruction has one YAML file in this directory:
    prompts/
    ├── summarize.yaml
    ├── analyze.yaml
    ├── ...
    └── issue_triage.yaml

A prompt file holds a ``template`` with a single ``{payload}`` placeholder and
optional ``metadata`` (version, notes).
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)


class PromptLoader:
    """Load and cache prompt templates from YAML files."""

    def __init__(self, prompts_dir: Optional[Path] = None):
        """
        Initialize prompt loader.

        Args:
            prompts_dir: Directory containing prompt files.
                        Defaults to src/backend/config/prompts/
        """
        if prompts_dir is None:
            self.prompts_dir = Path(__file__).parent
        else:
            self.prompts_dir = Path(prompts_dir)

        if not self.prompts_dir.exists():
            raise FileNotFoundError(f"Prompts directory not found: {self.prompts_dir}")

        self._cache: Dict[str, Dict[str, Any]] = {}

    def load_prompt(self, prompt_name: str) -> Dict[str, Any]:
        """
        Load a prompt configuration from YAML file.

        Args:
            prompt_name: Name of the prompt file (without .yaml extension)

        Returns:
            Dictionary with ``template`` and optional ``metadata``
        """
        if prompt_name in self._cache:
            return self._cache[prompt_name]

        prompt_file = self.prompts_dir / f"{prompt_name}.yaml"
        if not prompt_file.exists():
            prompt_file = self.prompts_dir / f"{prompt_name}.yml"

        if not prompt_file.exists():
            available = self.list_available_prompts()
            raise FileNotFoundError(
                f"Prompt '{prompt_name}' not found. Available: {available}"
            )

        with open(prompt_file, 'r', encoding='utf-8') as f:
            prompt_config = yaml.safe_load(f) or {}

        if not isinstance(prompt_config.get('template'), str):
            raise ValueError(f"Prompt file missing required field: template ({prompt_file.name})")
        if '{payload}' not in prompt_config['template']:
            raise ValueError(f"Prompt template has no {{payload}} placeholder ({prompt_file.name})")

        self._cache[prompt_name] = prompt_config

        if 'metadata' in prompt_config:
            meta = prompt_config['metadata']
            logger.info(f"Loaded prompt: {prompt_name} v{meta.get('version', 'unknown')}")

        return prompt_config

    def list_available_prompts(self) -> list:
        """List all available prompt names (without extensions)."""
        prompts = set()
        for file in self.prompts_dir.glob("*.yaml"):
            prompts.add(file.stem)
        for file in self.prompts_dir.glob("*.yml"):
            prompts.add(file.stem)
        return sorted(prompts)

    def format_prompt(self, prompt_name: str, payload: str) -> str:
        """Substitute the payload into a named template."""
        template = self.load_prompt(prompt_name)['template']
        return template.format(payload=payload)

    def get_metadata(self, prompt_name: str) -> Dict[str, Any]:
        return self.load_prompt(prompt_name).get('metadata', {})

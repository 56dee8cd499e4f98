"""Named payload and configuration templates.

Templates use ``${name}`` placeholders. Packaged templates live in
``sdn_agent/templates/``; a name containing a path separator is read from
the filesystem instead, which is how operators override the controller XML.
"""

from __future__ import annotations

import json
import logging
from importlib import resources
from pathlib import Path
from string import Template

logger = logging.getLogger(__name__)

# Controller request bodies, keyed by template name
CREATE_NETWORK = "create_network"
CREATE_SUBNET = "create_subnet"
CREATE_BRIDGE = "create_bridge"
CREATE_SNAT_RULES = "create_snat_rules"
CREATE_FORWARDING_RULE = "create_forwarding_rule"


class TemplateRenderer:
    """Fills named templates with key/value substitutions."""

    def __init__(self, search_path: Path | None = None):
        self.search_path = search_path
        self._cache: dict[str, str] = {}

    def _resolve_name(self, name: str) -> str:
        if "/" in name or "." in name:
            return name
        return f"{name}.json"

    def load(self, name: str) -> str:
        """Return the raw text of a template."""
        filename = self._resolve_name(name)
        if filename in self._cache:
            return self._cache[filename]

        if "/" in filename:
            text = Path(filename).read_text()
        elif self.search_path is not None:
            text = (self.search_path / filename).read_text()
        else:
            text = resources.files("sdn_agent").joinpath("templates", filename).read_text()

        self._cache[filename] = text
        return text

    def render(self, name: str, substitutions: dict[str, object]) -> str:
        """Render a template.

        Values rendered into ``.json`` templates are JSON-escaped.

        Raises:
            KeyError: If the template references a key not in substitutions
            FileNotFoundError: If the template does not exist
        """
        text = self.load(name)
        values = {k: str(v) for k, v in substitutions.items()}
        if self._resolve_name(name).endswith(".json"):
            # Values land inside JSON string literals or as bare numbers
            values = {k: json.dumps(v)[1:-1] for k, v in values.items()}
        rendered = Template(text).substitute(values)
        logger.debug(f"Rendered template {name} with keys {sorted(substitutions)}")
        return rendered

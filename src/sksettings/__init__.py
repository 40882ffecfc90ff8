"""SKSettings — portable assistant settings, resolved for this machine.

Turns settings.template.json into a concrete settings.json by substituting
the installation root for the $CLAUDE_CONFIG_DIR placeholder, then checks
that every hook script the settings reference exists on disk.
"""

__version__ = "0.1.0"

PLACEHOLDER = "$CLAUDE_CONFIG_DIR"

TEMPLATE_NAME = "settings.template.json"

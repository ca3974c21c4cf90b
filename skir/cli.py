"""
skir CLI.

Usage:
    skir list                          # Installed plugins
    skir install REF [REF...]          # Clone plugins (owner/repo, https or ssh URL)
    skir update [PLUGIN...]            # Pull plugins (all when omitted)
    skir remove PLUGIN                 # Unlink skills and delete the clone
    skir skills PLUGIN                 # Skills in a plugin and where they are linked
    skir link PLUGIN SKILL             # Link a skill into every target
    skir link PLUGIN SKILL --target KEY
    skir unlink PLUGIN SKILL [--target KEY]
    skir targets                       # Link targets and their directories
    skir config show                   # Show current config
    skir config set KEY VALUE          # Set a config value
    skir config get KEY                # Get a config value
"""

import argparse
import asyncio
import os
import sys
from typing import Optional

from skir import __version__
from skir.config import (
    CONFIG_KEYS,
    ENV_PREFIX,
    Settings,
    _load_yaml_config,
    get_config_path,
    reload_settings,
    save_yaml_config,
)
from skir.core.errors import PluginError
from skir.core.session import Session
from skir.lib.logger import setup_logging
from skir.models.plugin import Plugin, Skill

FLOAT_KEYS = {"status_display_seconds", "poll_interval", "git_timeout"}


# --- Helpers ---


def _open_session(settings: Settings) -> Session:
    """Build a session with the plugin list loaded, or exit on config errors."""
    try:
        session = Session.from_settings(settings)
    except PluginError as e:
        print(f"Error: {e}")
        sys.exit(1)
    # Messages are printed once at the end, so none may expire before then
    session.status.display_duration = float("inf")
    if not session.refresh():
        _report(session)
    session.status.remove("refresh")
    return session


def _require_plugin(session: Session, name: str) -> Plugin:
    plugin = session.find_plugin(name)
    if plugin is None:
        print(f"Plugin not installed: {name}")
        sys.exit(1)
    return plugin


def _require_skill(plugin: Plugin, name: str) -> Skill:
    skill = plugin.find_skill(name)
    if skill is None:
        print(f"No skill '{name}' in {plugin.slug}")
        sys.exit(1)
    return skill


def _report(session: Session) -> None:
    """Print every status message; exit non-zero if any is an error."""
    for entry in session.status.entries():
        print(entry.message)
    if session.status.has_error():
        sys.exit(1)


def _linked_keys(session: Session, skill: Skill) -> list[str]:
    return [t.key for t in session.targets if skill.is_linked_to(t)]


# --- Plugin commands ---


def cmd_list(args: argparse.Namespace, settings: Settings) -> None:
    """List installed plugins."""
    session = _open_session(settings)

    if not session.plugins:
        print("No plugins installed. Try: skir install owner/repo")
        return

    for plugin in session.plugins:
        linked = sum(1 for skill in plugin.skills if _linked_keys(session, skill))
        count = len(plugin.skills)
        print(f"  {plugin.slug} ({plugin.host}) - {count} skill{'s' if count != 1 else ''}, {linked} linked")


def cmd_install(args: argparse.Namespace, settings: Settings) -> None:
    """Install plugins concurrently."""
    session = _open_session(settings)

    async def run() -> None:
        for ref in args.refs:
            session.start_install(ref)
        await session.run_until_idle()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        session.shutdown()
        print("Interrupted")
        sys.exit(1)

    _report(session)


def cmd_update(args: argparse.Namespace, settings: Settings) -> None:
    """Update the named plugins, or all of them."""
    session = _open_session(settings)

    if args.plugins:
        plugins = [_require_plugin(session, name) for name in args.plugins]
    else:
        plugins = list(session.plugins)

    if not plugins:
        print("No plugins installed.")
        return

    async def run() -> None:
        for plugin in plugins:
            session.start_update(plugin)
        await session.run_until_idle()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        session.shutdown()
        print("Interrupted")
        sys.exit(1)

    _report(session)


def cmd_remove(args: argparse.Namespace, settings: Settings) -> None:
    """Remove a plugin and its links."""
    session = _open_session(settings)
    plugin = _require_plugin(session, args.plugin)
    session.delete(plugin)
    _report(session)


def cmd_skills(args: argparse.Namespace, settings: Settings) -> None:
    """List skills in a plugin."""
    session = _open_session(settings)
    plugin = _require_plugin(session, args.plugin)

    print(f"\n{plugin.slug}")
    print("-" * 40)

    if not plugin.skills:
        print("  (no skills found)")
        return

    for skill in plugin.skills:
        keys = _linked_keys(session, skill)
        linked = f" [{', '.join(keys)}]" if keys else ""
        print(f"  {skill.name}{linked}")
        if skill.description:
            print(f"      {skill.description}")


# --- Link commands ---


def cmd_link(args: argparse.Namespace, settings: Settings) -> None:
    """Link a skill into one target, or all of them."""
    session = _open_session(settings)
    plugin = _require_plugin(session, args.plugin)
    skill = _require_skill(plugin, args.skill)

    if args.target:
        try:
            target = session.targets.get(args.target)
        except PluginError as e:
            print(f"Error: {e}")
            print(f"Valid targets: {', '.join(session.targets.keys())}")
            sys.exit(1)
        if skill.is_linked_to(target):
            print(f"{skill.name} is already linked to {target.display_name}")
            return
        session.toggle_link(skill, target.key)
    else:
        if len(_linked_keys(session, skill)) == len(session.targets):
            print(f"{skill.name} is already linked to all targets")
            return
        session.link_all(skill)

    _report(session)


def cmd_unlink(args: argparse.Namespace, settings: Settings) -> None:
    """Unlink a skill from one target, or all of them."""
    session = _open_session(settings)
    plugin = _require_plugin(session, args.plugin)
    skill = _require_skill(plugin, args.skill)

    if args.target:
        try:
            target = session.targets.get(args.target)
        except PluginError as e:
            print(f"Error: {e}")
            sys.exit(1)
        keys = [target.key] if skill.is_linked_to(target) else []
    else:
        keys = _linked_keys(session, skill)

    if not keys:
        print(f"{skill.name} is not linked")
        return

    for key in keys:
        session.toggle_link(skill, key)

    _report(session)


def cmd_targets(args: argparse.Namespace, settings: Settings) -> None:
    """Show link targets."""
    session = _open_session(settings)
    for target in session.targets:
        print(f"  {target.key:<10} {target.display_name:<14} {target.directory}")


# --- Config commands ---


def cmd_config(args: argparse.Namespace, settings: Settings) -> None:
    """Config management: show, set, get."""
    action = getattr(args, "action", None)

    if action == "show":
        _config_show(settings)
    elif action == "set":
        _config_set(args.key, args.value)
    elif action == "get":
        _config_get(args.key)
    else:
        print("Usage: skir config {show|set|get}")


def _config_show(settings: Settings) -> None:
    """Show current config with effective values."""
    config = _load_yaml_config()

    print(f"\nConfig: {get_config_path()}")
    print("-" * 40)

    if not config:
        print("  (empty, using defaults)")
    for key, value in config.items():
        env_name = f"{ENV_PREFIX}{key.upper()}"
        override = f" (overridden by env: {env_name})" if os.environ.get(env_name) else ""
        print(f"  {key}: {value}{override}")

    try:
        cache_dir = settings.repos_dir()
    except PluginError as e:
        cache_dir = f"unavailable ({e})"
    print(f"\n  cache: {cache_dir}")


def _config_set(key: str, value: str) -> None:
    """Set a config value."""
    if key not in CONFIG_KEYS:
        print(f"Unknown key: {key}")
        print(f"Valid keys: {', '.join(sorted(CONFIG_KEYS))}")
        sys.exit(1)

    config = _load_yaml_config()

    # Type conversion
    if key in FLOAT_KEYS:
        try:
            value = float(value)
        except ValueError:
            print(f"Error: {key} must be a number, got '{value}'")
            sys.exit(1)

    config[key] = value
    path = save_yaml_config(config)
    print(f"Set {key} = {value}")
    print(f"Saved to {path}")


def _config_get(key: str) -> None:
    """Get a single config value."""
    config = _load_yaml_config()

    # Check env override first
    env_val = os.environ.get(f"{ENV_PREFIX}{key.upper()}")
    if env_val:
        print(env_val)
        return

    if key in config:
        print(config[key])
    else:
        print(f"Key '{key}' not set in config.yaml")
        sys.exit(1)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="skir",
        description="skir: install agent skill plugins from git and link them into your tools",
    )
    parser.add_argument("--version", action="version", version=f"skir {__version__}")
    parser.add_argument(
        "--log-level", default=None,
        help="Log level (DEBUG, INFO, WARNING, ERROR; default from config)",
    )
    subparsers = parser.add_subparsers(dest="command")

    # list
    subparsers.add_parser("list", help="List installed plugins")

    # install
    install_parser = subparsers.add_parser("install", help="Install plugins from git")
    install_parser.add_argument("refs", nargs="+", help="owner/repo, https://host/owner/repo or git@host:owner/repo")

    # update
    update_parser = subparsers.add_parser("update", help="Pull installed plugins")
    update_parser.add_argument("plugins", nargs="*", help="Plugins to update (all when omitted)")

    # remove
    remove_parser = subparsers.add_parser("remove", help="Remove a plugin and its links")
    remove_parser.add_argument("plugin", help="Plugin name or owner/repo")

    # skills
    skills_parser = subparsers.add_parser("skills", help="List skills in a plugin")
    skills_parser.add_argument("plugin", help="Plugin name or owner/repo")

    # link
    link_parser = subparsers.add_parser("link", help="Link a skill into link targets")
    link_parser.add_argument("plugin", help="Plugin name or owner/repo")
    link_parser.add_argument("skill", help="Skill name")
    link_parser.add_argument("--target", "-t", help="Link target key (all when omitted)")

    # unlink
    unlink_parser = subparsers.add_parser("unlink", help="Unlink a skill from link targets")
    unlink_parser.add_argument("plugin", help="Plugin name or owner/repo")
    unlink_parser.add_argument("skill", help="Skill name")
    unlink_parser.add_argument("--target", "-t", help="Link target key (all when omitted)")

    # targets
    subparsers.add_parser("targets", help="Show link targets")

    # config subcommand
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_sub = config_parser.add_subparsers(dest="action")
    config_sub.add_parser("show", help="Show current config")
    config_set_parser = config_sub.add_parser("set", help="Set a config value")
    config_set_parser.add_argument("key", help="Config key")
    config_set_parser.add_argument("value", help="Config value")
    config_get_parser = config_sub.add_parser("get", help="Get a config value")
    config_get_parser.add_argument("key", help="Config key")

    args = parser.parse_args(argv)

    settings = reload_settings()
    setup_logging(level=args.log_level)

    commands = {
        "list": cmd_list,
        "install": cmd_install,
        "update": cmd_update,
        "remove": cmd_remove,
        "skills": cmd_skills,
        "link": cmd_link,
        "unlink": cmd_unlink,
        "targets": cmd_targets,
        "config": cmd_config,
    }

    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return
    command(args, settings)

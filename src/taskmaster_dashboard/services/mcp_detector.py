"""
Detection of the TaskMaster MCP server in the user's Claude configuration.

The configuration file belongs to the editor, so every lookup is tolerant:
missing keys, wrong types and unreadable files degrade to "not configured".
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from ..domain.models import McpServerStatus


LOG = logging.getLogger(__name__)

SERVER_NAME = "task-master-ai"
SERVER_HINT = "task-master"


def load_claude_config(paths: Iterable[Path]) -> Tuple[Optional[Dict[str, Any]], Optional[Path]]:
    """Return the first readable, valid JSON config and its path."""
    for path in paths:
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError):
            continue
        if isinstance(data, dict):
            return data, Path(path)
    return None, None


def _is_taskmaster_server(name: str, config: Any) -> bool:
    if name == SERVER_NAME or SERVER_HINT in name:
        return True
    if isinstance(config, Mapping):
        command = config.get("command")
        return isinstance(command, str) and SERVER_HINT in command
    return False


def _find_server(servers: Any) -> Optional[Tuple[str, Mapping[str, Any]]]:
    if not isinstance(servers, Mapping):
        return None
    for name, config in servers.items():
        if _is_taskmaster_server(str(name), config):
            return str(name), config if isinstance(config, Mapping) else {}
    return None


def _server_type(config: Mapping[str, Any]) -> str:
    if config.get("command"):
        return "stdio"
    if config.get("url"):
        return "http"
    return "unknown"


def _describe(config: Mapping[str, Any], scope: str, config_path: Path) -> McpServerStatus:
    env = config.get("env")
    has_env = isinstance(env, Mapping) and len(env) > 0
    args = config.get("args")
    return McpServerStatus(
        has_mcp_server=True,
        is_configured=bool(config.get("command") or config.get("url")),
        has_api_keys=has_env,
        has_config=True,
        scope=scope,
        config_path=str(config_path),
        config={
            "command": config.get("command"),
            "args": list(args) if isinstance(args, list) else [],
            "url": config.get("url"),
            # Names only; values are API keys.
            "envVars": sorted(env.keys()) if has_env else [],
            "type": _server_type(config),
        },
    )


def detect_taskmaster_mcp_server(paths: Iterable[Path]) -> McpServerStatus:
    try:
        data, config_path = load_claude_config(paths)
        if data is None or config_path is None:
            return McpServerStatus(has_mcp_server=False, has_config=False, reason="No Claude configuration file found")

        found = _find_server(data.get("mcpServers"))
        if found:
            name, config = found
            LOG.debug("Found TaskMaster MCP server %r in user scope", name)
            return _describe(config, "user", config_path)

        projects = data.get("projects")
        if isinstance(projects, Mapping):
            for project_path, project_config in projects.items():
                if not isinstance(project_config, Mapping):
                    continue
                found = _find_server(project_config.get("mcpServers"))
                if found:
                    name, config = found
                    LOG.debug("Found TaskMaster MCP server %r for project %s", name, project_path)
                    status = _describe(config, "local", config_path)
                    status.config["projectPath"] = str(project_path)
                    return status

        return McpServerStatus(
            has_mcp_server=False,
            has_config=True,
            config_path=str(config_path),
            available_servers=_available_servers(data),
            reason=f"{SERVER_NAME} not found in configured MCP servers",
        )
    except Exception as exc:
        LOG.error("Error detecting MCP server config: %s", exc)
        return McpServerStatus(has_mcp_server=False, has_config=False, reason=f"Error checking MCP config: {exc}")


def _available_servers(data: Mapping[str, Any]) -> list[str]:
    names: list[str] = []
    servers = data.get("mcpServers")
    if isinstance(servers, Mapping):
        names.extend(str(name) for name in servers)
    projects = data.get("projects")
    if isinstance(projects, Mapping):
        for project_config in projects.values():
            if isinstance(project_config, Mapping) and isinstance(project_config.get("mcpServers"), Mapping):
                names.extend(f"local:{name}" for name in project_config["mcpServers"])
    return names


def get_all_mcp_servers(paths: Iterable[Path]) -> Dict[str, Any]:
    data, config_path = load_claude_config(paths)
    if data is None:
        return {"hasConfig": False, "servers": {}, "projectServers": {}}

    servers = data.get("mcpServers") if isinstance(data.get("mcpServers"), Mapping) else {}
    project_servers: Dict[str, Any] = {}
    projects = data.get("projects")
    if isinstance(projects, Mapping):
        for project_path, project_config in projects.items():
            if isinstance(project_config, Mapping) and isinstance(project_config.get("mcpServers"), Mapping):
                project_servers[str(project_path)] = dict(project_config["mcpServers"])

    return {
        "hasConfig": True,
        "configPath": str(config_path),
        "servers": dict(servers),
        "projectServers": project_servers,
    }

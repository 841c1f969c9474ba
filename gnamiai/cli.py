"""Command line entry point.

- ``gnamiai gateway`` serves the gateway with uvicorn.
- ``gnamiai pairing`` lists and approves channel senders against the same store.
- ``gnamiai agent`` sends one message straight to the model.
- ``gnamiai message send`` pushes a message through a running gateway.
- ``gnamiai doctor`` checks the configuration and exits 1 when it finds issues.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import List, Optional, Sequence

import httpx
import uvicorn

from .agent_core.model_provider import DEFAULT_LOCAL_BASE_URL, AgentRuntime, ModelFactory
from .agent_core.schemas.domain import AgentRequest, Thinking
from .core.config import GnamiConfig, Settings, load_config, save_config, settings
from .core.database import create_all, create_engine, create_sessionmaker
from .core.database.entities import Pairing
from .core.errors import GnamiError
from .core.logging_config import get_logger, setup_logging
from .core.store import GatewayStore
from .server.core.constant import TOKEN_HEADER
from .server.main import create_app
from .server.services.gateway import build_gateway

logger = get_logger(__name__)

MIN_PYTHON = (3, 11)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gnamiai", description="GnamiAI personal assistant gateway")
    sub = parser.add_subparsers(dest="command", required=True)

    gateway = sub.add_parser("gateway", help="Run the gateway server")
    gateway.add_argument("--port", type=int, default=None, help="Override gateway.port from the config file")
    gateway.add_argument("--host", default=None, help="Bind address (default: GNAMI_SERVER_HOST)")

    pairing = sub.add_parser("pairing", help="Manage sender pairings")
    pairing_sub = pairing.add_subparsers(dest="pairing_command", required=True)
    listing = pairing_sub.add_parser("list", help="List pairings")
    listing.add_argument("--pending", action="store_true", help="Only show pairings awaiting approval")
    approve = pairing_sub.add_parser("approve", help="Approve a pending pairing")
    approve.add_argument("channel", help="Channel name, e.g. telegram or webchat")
    approve.add_argument("code", help="Six digit pairing code")

    agent = sub.add_parser("agent", help="Send one message to the model and print the reply")
    agent.add_argument("--message", "-m", required=True, help="Message text")
    agent.add_argument("--thinking", choices=[t.value for t in Thinking], default=Thinking.medium.value)

    message = sub.add_parser("message", help="Send messages through a running gateway")
    message_sub = message.add_subparsers(dest="message_command", required=True)
    send = message_sub.add_parser("send", help="Send a message to a channel recipient")
    send.add_argument("--to", required=True, help="Telegram chat id or webchat sender id")
    send.add_argument("--message", "-m", required=True, help="Message text")
    send.add_argument("--channel", choices=["webchat", "telegram"], default="webchat")

    sub.add_parser("doctor", help="Check the configuration")
    return parser


async def _with_store(env: Settings, fn):
    engine = create_engine(env.store_url)
    try:
        await create_all(engine)
        return await fn(GatewayStore(create_sessionmaker(engine)))
    finally:
        await engine.dispose()


def _format_pairing(p: Pairing) -> str:
    state = "approved" if p.approved else "pending"
    return f"{p.channel}\t{p.sender_id}\t{p.code}\t{state}"


def run_pairing(args: argparse.Namespace, env: Settings = settings) -> int:
    if args.pairing_command == "approve":
        approved = asyncio.run(_with_store(env, lambda store: store.approve_pairing(args.channel, args.code)))
        if not approved:
            print(f"No pairing found for {args.channel} with code {args.code}.", file=sys.stderr)
            return 1
        print(f"Approved {args.channel} pairing {args.code}.")
        return 0

    pairings: List[Pairing] = asyncio.run(
        _with_store(env, lambda store: store.list_pairings(approved=False if args.pending else None))
    )
    for p in pairings:
        print(_format_pairing(p))
    return 0


def run_gateway(args: argparse.Namespace, env: Settings = settings) -> int:
    config = load_config(env.config_path)
    port = args.port or config.gateway.port
    host = args.host or env.server_host
    logger.info(f"Serving GnamiAI gateway on http://{host}:{port}")
    uvicorn.run(create_app(build_gateway(config, env=env)), host=host, port=port, log_config=None)
    return 0


def run_agent(
    args: argparse.Namespace,
    env: Settings = settings,
    model_factory: Optional[ModelFactory] = None,
) -> int:
    runtime = AgentRuntime(load_config(env.config_path), env=env, model_factory=model_factory)
    request = AgentRequest(input=args.message, thinking=Thinking(args.thinking))
    try:
        reply = asyncio.run(runtime.respond(request))
    except GnamiError as e:
        print(str(e), file=sys.stderr)
        return 1
    print(reply)
    return 0


def run_message(
    args: argparse.Namespace,
    env: Settings = settings,
    transport: Optional[httpx.BaseTransport] = None,
) -> int:
    config = load_config(env.config_path)
    headers = {TOKEN_HEADER: config.gateway.auth_token} if config.gateway.auth_token else {}
    payload = {"to": args.to, "message": args.message, "channel": args.channel}
    try:
        with httpx.Client(transport=transport, timeout=10.0) as client:
            response = client.post(f"http://127.0.0.1:{config.gateway.port}/api/send", json=payload, headers=headers)
    except httpx.HTTPError as e:
        print(f"Gateway send failed: {e}", file=sys.stderr)
        return 1
    if response.is_error:
        print(f"Gateway send failed ({response.status_code}): {response.text}", file=sys.stderr)
        return 1
    print("Message sent.")
    return 0


def _config_issues(config: GnamiConfig, env: Settings) -> List[str]:
    issues: List[str] = []
    model = config.agent.model
    if "/" not in model:
        issues.append("agent.model must be in provider/model format.")
    if model.startswith("openai/") and not (config.agent.openai_api_key or env.openai_api_key):
        issues.append("OpenAI API key is missing. Set OPENAI_API_KEY or agent.openaiApiKey.")
    if model.startswith("local/"):
        base_url = config.agent.local_base_url or env.local_model_base_url or DEFAULT_LOCAL_BASE_URL
        if not base_url.startswith(("http://", "https://")):
            issues.append("Local model base URL must start with http:// or https://.")
    if config.memory.enabled and not (env.mem0_api_key or config.memory.mem0_api_key):
        issues.append("MEM0_API_KEY not found in the environment or config; memory will run in basic mode.")
    return issues


def run_doctor(args: argparse.Namespace, env: Settings = settings) -> int:
    issues: List[str] = []
    if sys.version_info < MIN_PYTHON:
        issues.append(f"Python {sys.version.split()[0]} detected. Require >={'.'.join(map(str, MIN_PYTHON))}.")

    path = env.config_path
    if not path.exists():
        save_config(GnamiConfig(), path)
    try:
        issues.extend(_config_issues(load_config(path), env))
    except ValueError as e:
        issues.append(f"Config is invalid: {path}: {e}")
    if not os.access(path, os.R_OK | os.W_OK):
        issues.append(f"Config is not readable/writable: {path}")

    if not issues:
        print("Doctor passed. Configuration is healthy.")
        return 0
    print("Doctor found issues:")
    for issue in issues:
        print(f"- {issue}")
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    setup_logging()
    if args.command == "gateway":
        return run_gateway(args)
    if args.command == "agent":
        return run_agent(args)
    if args.command == "message":
        return run_message(args)
    if args.command == "doctor":
        return run_doctor(args)
    return run_pairing(args)


if __name__ == "__main__":
    sys.exit(main())

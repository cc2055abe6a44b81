"""
ChugSplash CLI
--------------

Commands:
    chugsplash bundle build <actions.json> [-o out.json]   Build root + proofs
    chugsplash bundle verify <bundle.json>                 Check every proof
    chugsplash ledger status [--ledger-dir DIR]            Show ledger state
    chugsplash ledger verify [--ledger-dir DIR]            Check journal chain
    chugsplash serve [--host H] [--port P]                 Run the HTTP surface
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, List, Optional

from chugsplash.bundle.builder import ActionBundle, get_action_bundle
from chugsplash.bundle.verifier import verify_action_proof
from chugsplash.core.settings import get_settings
from chugsplash.ledger.journal import LedgerJournal
from chugsplash.ledger.signing import Ed25519LedgerSigner, Ed25519LedgerVerifier
from chugsplash.protocol.errors import ChugSplashError
from chugsplash.utils.logging import configure_logging


def _load_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, sort_keys=True))


def _ledger_dir(args) -> Optional[str]:
    return getattr(args, "ledger_dir", None) or get_settings().ledger.directory


def cmd_bundle_build(args) -> int:
    raw_actions = _load_json(args.actions)
    if not isinstance(raw_actions, list):
        print("Error: actions file must contain a JSON list", file=sys.stderr)
        return 1

    bundle = get_action_bundle(raw_actions)
    output = json.dumps(bundle.to_dict(), indent=2)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output + "\n")
        print(f"Bundle root={bundle.root} size={bundle.size} written to {args.output}")
    else:
        print(output)
    return 0


def cmd_bundle_verify(args) -> int:
    bundle = ActionBundle.from_dict(_load_json(args.bundle))

    failures = [
        item.proof.action_index
        for item in bundle.actions
        if not verify_action_proof(bundle.root, bundle.size, item.action, item.proof)
    ]
    if failures:
        print(f"INVALID: proofs failed for indices {failures}", file=sys.stderr)
        return 1

    print(f"OK: {bundle.size} proofs verify against {bundle.root}")
    return 0


def cmd_ledger_status(args) -> int:
    from chugsplash.core.factory import open_ledger

    directory = _ledger_dir(args)
    if not directory:
        print("Error: --ledger-dir or CHUGSPLASH_LEDGER_DIR required", file=sys.stderr)
        return 1

    settings = get_settings().ledger.model_copy(update={"directory": directory})
    ledger = open_ledger(settings, owner=get_settings().owner)
    _print_json(ledger.snapshot())
    return 0


def cmd_ledger_verify(args) -> int:
    directory = _ledger_dir(args)
    if not directory:
        print("Error: --ledger-dir or CHUGSPLASH_LEDGER_DIR required", file=sys.stderr)
        return 1

    verifier = None
    key_file = get_settings().ledger.signing_key_file
    if key_file:
        verifier = Ed25519LedgerVerifier.for_signer(Ed25519LedgerSigner.from_pem_file(key_file))

    journal = LedgerJournal.in_directory(directory, sync=False)
    ok, reason = journal.verify_integrity(verifier)
    if not ok:
        print(f"CORRUPT: {reason}", file=sys.stderr)
        return 1

    print(f"OK: {journal.entry_count} journal entries verified")
    return 0


def cmd_serve(args) -> int:
    import uvicorn

    from chugsplash.core.factory import create_deployer
    from chugsplash.transport.http import create_app

    settings = get_settings()
    app = create_app(create_deployer(settings))
    uvicorn.run(
        app,
        host=args.host or settings.http.host,
        port=args.port or settings.http.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chugsplash",
        description="ChugSplash bundle deployer",
    )
    sub = parser.add_subparsers(dest="command")

    # bundle
    p_bundle = sub.add_parser("bundle", help="Build and check action bundles")
    sub_bundle = p_bundle.add_subparsers(dest="bundle_cmd")

    p_build = sub_bundle.add_parser("build", help="Build a bundle from raw actions")
    p_build.add_argument("actions", help="JSON file with a list of raw actions")
    p_build.add_argument("-o", "--output", help="Write bundle JSON to this file")
    p_build.set_defaults(func=cmd_bundle_build)

    p_verify = sub_bundle.add_parser("verify", help="Verify every proof in a bundle")
    p_verify.add_argument("bundle", help="Bundle JSON file")
    p_verify.set_defaults(func=cmd_bundle_verify)

    # ledger
    p_ledger = sub.add_parser("ledger", help="Inspect the execution ledger")
    sub_ledger = p_ledger.add_subparsers(dest="ledger_cmd")

    p_status = sub_ledger.add_parser("status", help="Show owner and bundle state")
    p_status.add_argument("--ledger-dir", help="Ledger journal directory")
    p_status.set_defaults(func=cmd_ledger_status)

    p_lverify = sub_ledger.add_parser("verify", help="Verify journal hash chain")
    p_lverify.add_argument("--ledger-dir", help="Ledger journal directory")
    p_lverify.set_defaults(func=cmd_ledger_verify)

    # serve
    p_serve = sub.add_parser("serve", help="Run the HTTP surface")
    p_serve.add_argument("--host", help="Bind host")
    p_serve.add_argument("--port", type=int, help="Bind port")
    p_serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    configure_logging(get_settings().log_level)

    try:
        return args.func(args)
    except ChugSplashError as e:
        print(f"Error [{e.code.value}]: {e.message}", file=sys.stderr)
        return 1
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

import argparse
import json
import sys

import requests


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _deployment_payload(args: argparse.Namespace) -> dict:
    return {"name": args.name, "image": args.image, "replicas": args.replicas}


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Declarative Deployment Reconciler CLI")
    p.add_argument("--api", default="http://localhost:8000", help="API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("deployments", help="List deployments")

    s_get = sub.add_parser("get", help="Show one deployment")
    s_get.add_argument("id")

    s_ev = sub.add_parser("events", help="Show events")
    s_ev.add_argument("--limit", type=int, default=20)
    s_ev.add_argument("--deployment", help="Only events for this deployment id")

    s_mk = sub.add_parser("create", help="Create a deployment")
    s_mk.add_argument("--name", required=True)
    s_mk.add_argument("--image", required=True)
    s_mk.add_argument("--replicas", type=int, default=1)

    s_up = sub.add_parser("update", help="Replace a deployment (all fields)")
    s_up.add_argument("id")
    s_up.add_argument("--name", required=True)
    s_up.add_argument("--image", required=True)
    s_up.add_argument("--replicas", type=int, required=True)

    s_rm = sub.add_parser("delete", help="Delete a deployment")
    s_rm.add_argument("id")

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    if args.cmd == "deployments":
        r = requests.get(f"{base}/deployments", timeout=10)
    elif args.cmd == "get":
        r = requests.get(f"{base}/deployment/{args.id}", timeout=10)
    elif args.cmd == "events":
        params = {"limit": args.limit}
        if args.deployment:
            params["deployment_id"] = args.deployment
        r = requests.get(f"{base}/events", params=params, timeout=10)
    elif args.cmd == "create":
        r = requests.post(f"{base}/deployments", json=_deployment_payload(args), timeout=30)
    elif args.cmd == "update":
        r = requests.patch(f"{base}/deployment/{args.id}", json=_deployment_payload(args), timeout=30)
    elif args.cmd == "delete":
        r = requests.delete(f"{base}/deployment/{args.id}", timeout=30)
    else:
        return 2

    _print(r.json())
    return 0 if r.ok else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))

#!/usr/bin/env python
"""
Service manager for local development
Starts, stops and lists the rule engines and the recompute worker
"""

import argparse
import os
import subprocess
import sys
import time
from pathlib import Path

os.environ["ENVIRONMENT"] = "local"
os.environ["DEBUG"] = "true"

from dotenv import load_dotenv

env_path = Path(__file__).parent / ".env.local"
if env_path.exists():
    load_dotenv(env_path, override=True)
else:
    print(".env.local not found. Using defaults from config.py.", file=sys.stderr)


class ServiceManager:
    """Manages local development services"""

    SERVICES: dict[str, dict] = {
        "eligibility-engine": {
            "port": 8004,
            "startup": "services.eligibility_engine.app.main:app",
            "description": "Promotion Eligibility Engine",
        },
        "compliance-engine": {
            "port": 8005,
            "startup": "services.compliance_engine.app.main:app",
            "description": "Compliance Engine",
        },
        "worker": {
            "port": None,
            "startup": "services.worker.app.worker",
            "description": "Recompute Queue Worker",
        },
    }

    def __init__(self):
        self.processes: dict[str, subprocess.Popen] = {}
        self.project_root = Path(__file__).parent

    def validate_service(self, service_name: str) -> bool:
        if service_name not in self.SERVICES:
            print(f"ERROR: Unknown service '{service_name}'", file=sys.stderr)
            print(f"Available services: {', '.join(self.SERVICES.keys())}", file=sys.stderr)
            return False
        return True

    def build_command(self, service_name: str, verbose: bool) -> list[str]:
        config = self.SERVICES[service_name]
        if config["port"] is None:
            return [sys.executable, "-m", config["startup"]]
        cmd = [sys.executable, "-m", "uvicorn", config["startup"], "--host", "0.0.0.0", "--port", str(config["port"])]
        if verbose:
            cmd.append("--reload")
        return cmd

    def start_service(self, service_name: str, verbose: bool = False) -> bool:
        if not self.validate_service(service_name):
            return False
        port = self.SERVICES[service_name]["port"]
        print(f"Starting {service_name}" + (f" (port {port})..." if port else "..."), file=sys.stderr)

        env = os.environ.copy()
        env["ENVIRONMENT"] = "local"
        env["DEBUG"] = "true"
        if service_name == "worker":
            engine_port = self.SERVICES["compliance-engine"]["port"]
            env.setdefault("COMPLIANCE_ENGINE_URL", f"http://localhost:{engine_port}")
            env.setdefault("REDIS_URL", "redis://localhost:6379")
        try:
            process = subprocess.Popen(
                self.build_command(service_name, verbose),
                cwd=str(self.project_root),
                env=env,
                stdout=sys.stdout if verbose else subprocess.DEVNULL,
                stderr=sys.stderr if verbose else subprocess.DEVNULL,
            )
        except OSError as e:
            print(f"ERROR: Failed to start {service_name}: {e}", file=sys.stderr)
            return False
        self.processes[service_name] = process
        print(f" {service_name} started (PID: {process.pid})", file=sys.stderr)
        return True

    def stop_service(self, service_name: str) -> bool:
        process = self.processes.pop(service_name, None)
        if process is None:
            print(f"ERROR: {service_name} is not running", file=sys.stderr)
            return False
        print(f"Stopping {service_name}...", file=sys.stderr)
        process.terminate()
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            print(f"Force killing {service_name}...", file=sys.stderr)
            process.kill()
            process.wait()
        print(f" {service_name} stopped", file=sys.stderr)
        return True

    def start_all(self, verbose: bool = False) -> bool:
        failed = []
        for service_name in self.SERVICES:
            if not self.start_service(service_name, verbose):
                failed.append(service_name)
            time.sleep(2)  # let each service bind before the next
        if failed:
            print(f"WARNING: Failed to start: {', '.join(failed)}", file=sys.stderr)
            return len(failed) < len(self.SERVICES)
        print(" All services started successfully!", file=sys.stderr)
        return True

    def stop_all(self) -> None:
        for service_name in list(self.processes):
            self.stop_service(service_name)

    def list_services(self) -> None:
        print("Available Services:", file=sys.stderr)
        print("-" * 60, file=sys.stderr)
        for service_name, config in self.SERVICES.items():
            running = " RUNNING" if service_name in self.processes else "  stopped"
            port = config["port"] or "-"
            print(f"{service_name:20} {config['description']:30} [Port: {port}] {running}", file=sys.stderr)


def main():
    parser = argparse.ArgumentParser(description="Local Development Service Manager")
    parser.add_argument("command", nargs="?", default="list", choices=["start", "list"], help="Command to execute")
    parser.add_argument("service", nargs="?", default="all", help="Service name or 'all'")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show service output")
    args = parser.parse_args()

    manager = ServiceManager()
    if args.command == "list":
        manager.list_services()
        return 0

    if args.service == "all":
        success = manager.start_all(args.verbose)
    else:
        success = manager.start_service(args.service, args.verbose)
    if not success:
        return 1
    try:
        # services live as long as this process
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nShutting down services...", file=sys.stderr)
        manager.stop_all()
    return 0


if __name__ == "__main__":
    sys.exit(main())

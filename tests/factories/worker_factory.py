"""Test factory for fake worker processes."""
import sys
import textwrap
from pathlib import Path
from typing import Optional
from bridgenode.worker.models import WorkerCommand

PRELUDE = '''
import json
import os
import signal
import sys
import time


def read_job():
    line = sys.stdin.readline()
    return json.loads(line) if line else None


def reply(obj):
    sys.stdout.write(json.dumps(obj) + "\\n")
    sys.stdout.flush()
'''

# Bodies keyed by behaviour, each runs after PRELUDE
WORKER_BODIES = {
    "connected": '''
read_job()
time.sleep(0.05)
reply({"ok": True, "timeout": False, "terminated": False, "response": {"text": "connected"}})
time.sleep(60)
''',
    "echo": '''
job = read_job()
reply({"ok": True, "response": {"text": "echo"}, "job": job})
time.sleep(60)
''',
    "silent": '''
read_job()
time.sleep(60)
''',
    "crash": '''
time.sleep(0.01)
sys.exit(3)
''',
    "sigkill": '''
read_job()
os.kill(os.getpid(), signal.SIGKILL)
''',
    "garbage": '''
read_job()
sys.stdout.write("panic: runtime error: invalid memory address\\n")
sys.stdout.flush()
time.sleep(60)
''',
    "not_object": '''
read_job()
reply([1, 2, 3])
time.sleep(60)
''',
    "ok_false": '''
read_job()
reply({"ok": False, "response": {"text": "modbus connect refused"}})
time.sleep(60)
''',
    "missing_response": '''
read_job()
reply({"ok": True})
time.sleep(60)
''',
    "reply_and_exit": '''
read_job()
reply({"ok": True, "response": {"text": "bye"}})
sys.exit(0)
''',
    "stderr_noise": '''
read_job()
sys.stderr.write("Loading config file...\\n")
sys.stderr.flush()
reply({"ok": True, "response": {"text": "connected"}})
time.sleep(60)
''',
    "spawns_child": '''
import subprocess
child = subprocess.Popen(
    [sys.executable, "-c", "import time; time.sleep(60)"],
    stdin=subprocess.DEVNULL, stdout=subprocess.DEVNULL,
)
read_job()
reply({"ok": True, "response": {"text": str(child.pid)}})
time.sleep(60)
''',
    "spawns_stubborn_child": '''
import subprocess
child = subprocess.Popen(
    [sys.executable, "-c",
     "import signal, sys, time\\n"
     "signal.signal(signal.SIGTERM, signal.SIG_IGN)\\n"
     "sys.stdout.write('armed\\\\n'); sys.stdout.flush()\\n"
     "time.sleep(60)"],
    stdin=subprocess.DEVNULL, stdout=subprocess.PIPE,
)
child.stdout.readline()
read_job()
reply({"ok": True, "response": {"text": str(child.pid)}})
time.sleep(60)
''',
    "oversized_line": '''
read_job()
sys.stdout.write("x" * 200000 + "\\n")
reply({"ok": True, "response": {"text": "after"}})
time.sleep(60)
''',
    "ignore_sigterm": '''
signal.signal(signal.SIGTERM, signal.SIG_IGN)
read_job()
time.sleep(60)
''',
}


def write_worker_script(directory: Path, behaviour: str, name: Optional[str] = None) -> Path:
    """
    Write a fake worker script for a behaviour.

    Args:
        directory: Directory to write into (usually tmp_path)
        behaviour: Key of WORKER_BODIES
        name: Optional file name, defaults to worker_<behaviour>.py

    Returns:
        Path: Path to the script
    """
    body = WORKER_BODIES[behaviour]
    script = directory / (name or f"worker_{behaviour}.py")
    script.write_text(textwrap.dedent(PRELUDE) + textwrap.dedent(body))
    return script


def create_worker_command(directory: Path, behaviour: str) -> WorkerCommand:
    """
    Factory function to create a WorkerCommand running a fake worker.

    The current interpreter is the executable and the script its argument.
    """
    script = write_worker_script(directory, behaviour)
    return WorkerCommand(path=sys.executable, args=["-u", str(script)])

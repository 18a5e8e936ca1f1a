import subprocess
from pathlib import Path

def run(cmd, cwd=None):
    print(f"[{cwd or '.'}]$ {cmd}")
    subprocess.check_call(cmd, shell=True, cwd=cwd)

def git_commit_change(path, filename, message):
    file_path = path / filename
    with open(file_path, "a") as f:
        f.write(message + "\n")
    run(f"git add {filename}", cwd=path)
    run(f'git commit -m "{message}"', cwd=path)

def stack_branch(repo, name, parent, commits=1):
    """Create NAME on top of PARENT, record the stack parent, add commits."""
    run(f"git checkout -b {name} {parent}", cwd=repo)
    run(f"git config stack.parent.{name} {parent}", cwd=repo)
    for i in range(1, commits + 1):
        git_commit_change(repo, f"{name}.txt", f"{name}: change {i}")

# --- Setup base path ---
base = Path("stack-playground").absolute()
if base.exists():
    run("rm -rf stack-playground", cwd=base.parent)
base.mkdir()

run("git init", cwd=base)
run("git checkout -b main", cwd=base)
git_commit_change(base, "README.md", "# stack playground")

# --- A small tree of stacked branches ---
#   main
#   └─ api
#      ├─ api-docs
#      └─ ui
#         └─ ui-polish
stack_branch(base, "api", "main", commits=2)
stack_branch(base, "api-docs", "api")
stack_branch(base, "ui", "api", commits=2)
stack_branch(base, "ui-polish", "ui")

# --- Move main forward so the whole stack needs restacking ---
run("git checkout main", cwd=base)
for i in range(1, 3):
    git_commit_change(base, "main.txt", f"main: upstream change {i}")

run("git checkout ui", cwd=base)

print(f"\nPlayground created at {base}")
print("Try: git stack list --all, then git stack rebase --onto main --dry-run")
run("git log --oneline --graph --decorate --all", cwd=base)

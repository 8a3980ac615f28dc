"""Static reference data consulted by the safety classifier.

Every table here is immutable. A command, subcommand or tool only appears in
an allowlist if it never changes files, repository state or the system when
invoked with the flags the classifier lets through.
"""

from typing import Dict, FrozenSet

READ_ONLY_TOOLS: FrozenSet[str] = frozenset(
    {
        "read_file",
        "glob",
        "grep",
        "list_files",
        "web_fetch",
        "web_search",
    }
)

MUTATING_TOOLS: FrozenSet[str] = frozenset({"write_file", "edit"})

SHELL_TOOL = "bash"
MCP_TOOL_PREFIX = "mcp__"

# Substrings that let a harmless-looking prefix chain into something else.
# Any "&" is covered: "&&", background jobs and "&>" redirection.
SHELL_OPERATORS: tuple[str, ...] = (
    ">",
    "|",
    "&",
    ";",
    "$(",
    "`",
    "<(",
    "\n",
    "\r",
)

SAFE_BASH_COMMANDS: FrozenSet[str] = frozenset(
    {
        # File inspection
        "cat",
        "head",
        "tail",
        "wc",
        "file",
        "stat",
        "md5sum",
        "sha1sum",
        "sha256sum",
        "sha512sum",
        "b2sum",
        "cksum",
        "xxd",
        "hexdump",
        "strings",
        # Directory listing
        "ls",
        "find",
        "tree",
        "du",
        "df",
        "exa",
        "lsd",
        # Text search
        "grep",
        "rg",
        "ag",
        "ack",
        "sed",
        "awk",
        # System info
        "pwd",
        "whoami",
        "hostname",
        "uname",
        "date",
        "uptime",
        "id",
        # Environment
        "env",
        "printenv",
        "echo",
        "printf",
        "which",
        "type",
        "whereis",
        # Help
        "man",
        "help",
        "info",
        # Paths
        "basename",
        "dirname",
        "realpath",
        "readlink",
        # Text transforms
        "sort",
        "uniq",
        "cut",
        "tr",
        "diff",
        "cmp",
        "comm",
        "join",
        "paste",
        "fold",
        "fmt",
        "nl",
        "rev",
        "tac",
        "expand",
        "unexpand",
        # Structured data
        "jq",
        "yq",
        "xq",
        # Multi-step tools, decided by subcommand
        "git",
        "cargo",
        "npm",
        # Shell no-ops
        "test",
        "[",
        "true",
        "false",
    }
)

# Flags that turn an otherwise read-only command into a writer or make it run
# another program. A token matches when it equals the flag, starts with
# "<flag>=", is an unambiguous abbreviation of a long flag, or is a short-option
# cluster containing the letter.
MUTATING_FLAGS: Dict[str, FrozenSet[str]] = {
    "sed": frozenset({"-i", "--in-place"}),
    "find": frozenset(
        {
            "-delete",
            "-exec",
            "-execdir",
            "-ok",
            "-okdir",
            "-fprint",
            "-fprint0",
            "-fprintf",
            "-fls",
        }
    ),
    "sort": frozenset({"-o", "--output", "--compress-program"}),
    "awk": frozenset({"-i", "--include"}),
    "yq": frozenset({"-i", "--inplace", "--in-place"}),
    "xq": frozenset({"-i", "--inplace", "--in-place"}),
    "date": frozenset({"-s", "--set"}),
    "tree": frozenset({"-o"}),
    "rg": frozenset({"--pre"}),
    "man": frozenset({"-P", "--pager", "-H", "--html"}),
    "info": frozenset({"-o", "--output"}),
    "env": frozenset({"-S", "--split-string"}),
}

# Commands whose extra positional arguments name an output file or a new value.
MAX_POSITIONAL_ARGS: Dict[str, int] = {
    "uniq": 1,
    "xxd": 1,
    "hostname": 0,
}

SAFE_GIT_SUBCOMMANDS: FrozenSet[str] = frozenset(
    {
        "status",
        "log",
        "diff",
        "show",
        "branch",
        "tag",
        "describe",
        "rev-parse",
        "rev-list",
        "ls-files",
        "ls-tree",
        "cat-file",
        "blame",
        "shortlog",
        "reflog",
        "name-rev",
        "for-each-ref",
        "grep",
    }
)

# Git global flags whose value is the following token.
GIT_FLAGS_WITH_ARGS: FrozenSet[str] = frozenset({"-C", "--git-dir", "--work-tree", "--namespace"})

# Inline config can set a pager, fsmonitor or diff driver that runs a program.
GIT_FORBIDDEN_GLOBAL_FLAGS: FrozenSet[str] = frozenset({"-c", "--config-env"})

# Writes a file, or hands matches to a pager/editor program.
GIT_MUTATING_FLAGS: FrozenSet[str] = frozenset({"--output", "-O", "--open-files-in-pager"})

# Ref-listing subcommands that create, move or delete refs when given these flags
# or a positional ref name.
GIT_REF_SUBCOMMAND_FLAGS: Dict[str, FrozenSet[str]] = {
    "branch": frozenset(
        {
            "-d",
            "-D",
            "--delete",
            "-m",
            "-M",
            "--move",
            "-c",
            "-C",
            "--copy",
            "-f",
            "--force",
            "-u",
            "--set-upstream-to",
            "--unset-upstream",
            "--edit-description",
            "-t",
            "--track",
        }
    ),
    "tag": frozenset(
        {
            "-d",
            "--delete",
            "-a",
            "--annotate",
            "-s",
            "--sign",
            "-u",
            "--local-user",
            "-f",
            "--force",
            "-m",
            "--message",
            "-F",
            "--file",
        }
    ),
}

GIT_LIST_FLAGS: FrozenSet[str] = frozenset({"-l", "--list"})

# "git reflog" defaults to "show"; "expire" and "delete" rewrite the reflog.
GIT_REFLOG_READ_ACTIONS: FrozenSet[str] = frozenset({"show"})

SAFE_CARGO_SUBCOMMANDS: FrozenSet[str] = frozenset(
    {
        "check",
        "clippy",
        "test",
        "doc",
        "tree",
        "metadata",
        "pkgid",
        "verify-project",
        "locate-project",
        "read-manifest",
    }
)

CARGO_MUTATING_FLAGS: FrozenSet[str] = frozenset({"--fix"})

SAFE_NPM_SUBCOMMANDS: FrozenSet[str] = frozenset(
    {
        "ls",
        "list",
        "view",
        "info",
        "show",
        "outdated",
        "search",
        "audit",
        "doctor",
        "explain",
        "fund",
        "query",
    }
)

SUBCOMMAND_ALLOWLISTS: Dict[str, FrozenSet[str]] = {
    "git": SAFE_GIT_SUBCOMMANDS,
    "cargo": SAFE_CARGO_SUBCOMMANDS,
    "npm": SAFE_NPM_SUBCOMMANDS,
}

"""Shell integration printed by `git-workty init <shell>` and `git-workty completions <shell>`."""

from git_workty.constants import CD_FILE_ENV, SUPPORTED_SHELLS

_POSIX_TEMPLATE = """\
# git-workty shell integration ({shell})
# Add to your shell startup file:
#   eval "$(git-workty init {shell})"

__workty_cd() {{
    local __workty_file __workty_status __workty_target
    __workty_file="$(mktemp "${{TMPDIR:-/tmp}}/workty.XXXXXX")" || return 1
    {env}="$__workty_file" command git-workty "$@"
    __workty_status=$?
    if [ $__workty_status -eq 0 ] && [ -s "$__workty_file" ]; then
        __workty_target="$(cat "$__workty_file")"
        cd -- "$__workty_target" || __workty_status=$?
    fi
    rm -f "$__workty_file"
    return $__workty_status
}}

wcd() {{ __workty_cd switch "$@"; }}
wgo() {{ __workty_cd switch "$@"; }}
wnew() {{
    local __workty_target
    __workty_target="$(command git-workty add --print-path "$@")" || return $?
    [ -n "$__workty_target" ] && cd -- "$__workty_target"
}}
wls() {{ command git-workty list "$@"; }}
"""

_FISH_TEMPLATE = """\
# git-workty shell integration (fish)
# Add to ~/.config/fish/config.fish:
#   git-workty init fish | source

function __workty_cd
    set -l __workty_file (mktemp)
    or return 1
    env {env}=$__workty_file git-workty $argv
    set -l __workty_status $status
    if test $__workty_status -eq 0; and test -s $__workty_file
        cd -- (cat $__workty_file)
        or set __workty_status $status
    end
    rm -f $__workty_file
    return $__workty_status
end

function wcd
    __workty_cd switch $argv
end

function wgo
    __workty_cd switch $argv
end

function wnew
    set -l __workty_target (git-workty add --print-path $argv)
    or return $status
    test -n "$__workty_target"; and cd -- $__workty_target
end

function wls
    git-workty list $argv
end
"""


def init_script(shell: str) -> str:
    """Shell functions that perform the cd for `switch` and `add`.

    Args:
        shell: One of bash, zsh, fish

    Returns:
        Script text to be evaluated by the shell

    Raises:
        ValueError: unsupported shell
    """
    if shell not in SUPPORTED_SHELLS:
        raise ValueError(f"shell must be one of {SUPPORTED_SHELLS}, got '{shell}'")
    if shell == "fish":
        return _FISH_TEMPLATE.format(env=CD_FILE_ENV)
    return _POSIX_TEMPLATE.format(shell=shell, env=CD_FILE_ENV)


COMMANDS = [
    "add", "list", "ls", "switch", "go", "remove", "rm", "rename",
    "prune", "clean", "doctor", "init", "completions", "help",
]
# Commands whose first argument is a worktree name
_TARGET_COMMANDS = ["switch", "go", "remove", "rm", "rename"]

# Names are read from `list --json`, one "name" key per line
_NAMES_PIPELINE = "git-workty list --json 2>/dev/null | sed -n 's/^ *\"name\": \"\\(.*\\)\",$/\\1/p'"

_BASH_COMPLETION = """\
# git-workty completion (bash)
# Add to ~/.bashrc:
#   eval "$(git-workty completions bash)"

__workty_names() {{
    {names}
}}

_git_workty() {{
    local cur prev
    cur="${{COMP_WORDS[COMP_CWORD]}}"
    prev="${{COMP_WORDS[COMP_CWORD-1]}}"
    if [ "$COMP_CWORD" -eq 1 ]; then
        COMPREPLY=( $(compgen -W "{commands}" -- "$cur") )
        return
    fi
    case "$prev" in
        {targets})
            COMPREPLY=( $(compgen -W "$(__workty_names)" -- "$cur") ) ;;
        init|completions)
            COMPREPLY=( $(compgen -W "{shells}" -- "$cur") ) ;;
        *)
            COMPREPLY=( $(compgen -f -- "$cur") ) ;;
    esac
}}

_workty_target() {{
    COMPREPLY=( $(compgen -W "$(__workty_names)" -- "${{COMP_WORDS[COMP_CWORD]}}") )
}}

complete -F _git_workty git-workty
complete -F _workty_target wcd wgo
"""

_ZSH_COMPLETION = """\
#compdef git-workty
# git-workty completion (zsh)
# Add to ~/.zshrc:
#   eval "$(git-workty completions zsh)"

__workty_names() {{
    local -a names
    names=(${{(f)"$({names})"}})
    _describe 'worktree' names
}}

_git_workty() {{
    if (( CURRENT == 2 )); then
        local -a commands
        commands=({commands})
        _describe 'command' commands
        return
    fi
    case "${{words[2]}}" in
        {targets}) __workty_names ;;
        init|completions) _values 'shell' {shells} ;;
        *) _files ;;
    esac
}}

_workty_target() {{
    __workty_names
}}

compdef _git_workty git-workty
compdef _workty_target wcd wgo
"""

_FISH_COMPLETION = """\
# git-workty completion (fish)
# Add to ~/.config/fish/config.fish:
#   git-workty completions fish | source

function __workty_names
    {names}
end

complete -c git-workty -f
complete -c git-workty -n "__fish_use_subcommand" -a "{commands}"
complete -c git-workty -n "__fish_seen_subcommand_from {targets}" -a "(__workty_names)"
complete -c git-workty -n "__fish_seen_subcommand_from init completions" -a "{shells}"
complete -c wcd -f -a "(__workty_names)"
complete -c wgo -f -a "(__workty_names)"
"""


def completion_script(shell: str) -> str:
    """Tab completion for git-workty and the wcd/wgo helpers.

    Worktree names are completed from `git-workty list --json`.

    Raises:
        ValueError: unsupported shell
    """
    if shell not in SUPPORTED_SHELLS:
        raise ValueError(f"shell must be one of {SUPPORTED_SHELLS}, got '{shell}'")
    commands = " ".join(COMMANDS)
    shells = " ".join(SUPPORTED_SHELLS)
    if shell == "bash":
        return _BASH_COMPLETION.format(
            names=_NAMES_PIPELINE,
            commands=commands,
            targets="|".join(_TARGET_COMMANDS),
            shells=shells,
        )
    if shell == "zsh":
        return _ZSH_COMPLETION.format(
            names=_NAMES_PIPELINE,
            commands=commands,
            targets="|".join(_TARGET_COMMANDS),
            shells=shells,
        )
    return _FISH_COMPLETION.format(
        names=_NAMES_PIPELINE,
        commands=commands,
        targets=" ".join(_TARGET_COMMANDS),
        shells=shells,
    )

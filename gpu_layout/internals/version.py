from __future__ import annotations
import sys, platform

from gpu_layout import __version__ as app_ver, __dev__ as is_dev

def _get_versions() -> dict[str, str]:

    # lark + llvmlite + LLVM (best-effort; don't crash if a binding is broken)
    lark_ver = "unknown"
    llvmlite_ver = "unknown"
    llvm_lib_ver = "unknown"
    try:
        import lark
        lark_ver = getattr(lark, "__version__", "unknown")
    except ImportError:
        pass
    try:
        from llvmlite import binding as llvm
        import llvmlite
        llvmlite_ver = getattr(llvmlite, "__version__", "unknown")
        llvm_lib_ver = ".".join(map(str, (getattr(llvm, "llvm_version_info", None) or ()))) or "unknown"
    except (ImportError, OSError):
        pass

    return {
        "app": app_ver,
        "python": platform.python_version(),
        "lark": lark_ver,
        "llvmlite": llvmlite_ver,
        "llvm": llvm_lib_ver,
    }

def print_banner(stream=None) -> None:
    stream = stream or sys.stdout
    v = _get_versions()

    # Only use ANSI styling if the stream is a TTY (interactive terminal)
    if getattr(stream, "isatty", lambda: False)():
        BOLD, DIM, RESET = "\x1b[1m", "\x1b[2m", "\x1b[0m"
    else:
        BOLD, DIM, RESET = "", "", ""

    dev_marker = " (dev)" if is_dev else ""
    print(
        f"{BOLD}gpu-layout{RESET} • {v['app']}{dev_marker}\n"
        f"{DIM}Python {v['python']} • lark {v['lark']} • llvmlite {v['llvmlite']} • LLVM {v['llvm']}{RESET}",
        file=stream,
    )

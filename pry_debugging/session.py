import inspect
import io
import linecache
import logging
import pdb
import sys
from pprint import saferepr

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Write-back of locals assigned at the prompt.  From 3.13 on ``f_locals`` is a
# write-through proxy; before that the dict snapshot has to be pushed back to
# the fast-locals array through the CPython API.
# ---------------------------------------------------------------------------

if sys.version_info < (3, 13):
    import ctypes

    _PyFrame_LocalsToFast = ctypes.pythonapi.PyFrame_LocalsToFast  # type: ignore[attr-defined]
    _PyFrame_LocalsToFast.argtypes = (ctypes.py_object, ctypes.c_int)  # (frame, clear)
    _PyFrame_LocalsToFast.restype = None

    def _locals_to_fast(frame):
        """Copy the frame.f_locals dict back into fast locals (CPython only)."""
        _PyFrame_LocalsToFast(frame, 0)

else:

    def _locals_to_fast(frame):
        pass


CONTEXT_LINES = 5


class PryPdb(pdb.Pdb):
    """An interactive breakpoint bound to one frame.

    Commands come from *source* (see :mod:`pry_debugging.sources`) and the
    debugger output is handed back to it in one chunk per prompt.  Any line
    that is not a command is executed in the bound frame, so ``num = 5``
    really changes ``num`` for the rest of the function.
    """

    prompt = "pry> "

    def __init__(self, source, disabled=False):
        self.source = source
        self.disabled = disabled
        self._output_buffer = io.StringIO()
        super().__init__(stdin=self, stdout=self._output_buffer, nosigint=True, readrc=False)
        self.prompt = PryPdb.prompt

        self._EXCLUDED_VARS = {"pry", "pry_debugging", "__builtins__"}
        self._tracing = False
        self._outer_trace = None

    def set_trace(self, frame=None):
        """Suspend in *frame* (the caller by default) until the session resumes.

        Unlike `pdb.Pdb.set_trace` this stops right away in the given frame
        instead of on the next trace event, so ``whereami`` shows the line
        that called us.  Tracing is only switched on once the session ends
        with ``next``/``step``/``until``/``return``, so pdb never traces its
        own prompt loop.
        """
        if frame is None:
            frame = sys._getframe().f_back

        if self.disabled:
            logger.debug("pry disabled, skipping session in %s", frame.f_code.co_name)
            return

        self._enter(frame, None)

    def post_mortem(self, tb):
        """Open a session in the innermost frame of traceback *tb*."""
        while tb.tb_next is not None:
            tb = tb.tb_next

        if self.disabled:
            logger.debug("pry disabled, skipping post-mortem in %s", tb.tb_frame.f_code.co_name)
            return

        # The frame is finished, there is nothing to step through.
        self._enter(tb.tb_frame, tb.tb_lineno, trace=False)

    def break_at(self, func, lineno=None):
        """Stop inside *func* when it reaches *lineno*, its last line by default.

        The breakpoint is temporary: it is cleared on the first hit, and
        tracing stops once the session resumes with ``continue``.
        """
        if self.disabled:
            logger.debug("pry disabled, not breaking in %s", func.__name__)
            return

        if lineno is None:
            source_lines, first_line = inspect.getsourcelines(func)
            lineno = first_line + len(source_lines) - 1

        self.reset()
        self.quitting = False
        self._save_outer_trace()
        err = self.set_break(self.canonic(func.__code__.co_filename), lineno, temporary=True)
        if err:
            raise ValueError(err)

        self._hook_frames(sys._getframe().f_back)
        self.set_continue()
        sys.settrace(self.trace_dispatch)

    def _enter(self, frame, lineno, trace=True):
        initial_context = self._gather_initial_context(frame, lineno)
        self.message(initial_context)
        self.source.set_initial_context(initial_context)

        self.reset()
        self.quitting = False
        self._save_outer_trace()
        if trace:
            self._hook_frames(frame)
        self.curframe = frame
        self.curindex = 0
        self.stack = [(frame, frame.f_lineno)]

        self.interaction(frame, None)
        self._flush_output()

        if trace and self._tracing:
            sys.settrace(self.trace_dispatch)
        else:
            self._stop_tracing()

    def interaction(self, frame, traceback):
        super().interaction(frame, traceback)
        self._flush_output()

    # ------------------------------------------------------------------
    # Tracing.  Frames are hooked the way `bdb.Bdb.set_trace` hooks them;
    # whatever tracer was installed before the session is put back when
    # pdb stops tracing.
    # ------------------------------------------------------------------

    def _save_outer_trace(self):
        current = sys.gettrace()
        if current != self.trace_dispatch:
            self._outer_trace = current

    def _hook_frames(self, frame):
        self._tracing = True
        while frame is not None:
            frame.f_trace = self.trace_dispatch
            self.botframe = frame
            frame = frame.f_back

    def _stop_tracing(self):
        self._tracing = False
        botframe = getattr(self, "botframe", None)
        if botframe is not None:
            botframe.f_trace = None
        sys.settrace(self._outer_trace)

    def set_continue(self):
        super().set_continue()
        if not self.breaks:
            self._stop_tracing()

    def set_quit(self):
        super().set_quit()
        self._stop_tracing()

    def _gather_initial_context(self, frame, lineno=None):
        """Banner, locals and source around the current line."""
        if lineno is None:
            lineno = frame.f_lineno

        context_parts = [
            f"From: {frame.f_code.co_filename} @ line {lineno} in {frame.f_code.co_name}",
            "",
        ]
        self._add_source_context(context_parts, frame, lineno)

        context_parts.append("\nLocal variables:")
        safe_locals = self._safe_locals(frame)
        if not safe_locals:
            context_parts.append("  (none)")
        for name, value in safe_locals.items():
            context_parts.append(f"  {name} = {self._safe_repr(value)}")

        return "\n".join(context_parts)

    def _add_source_context(self, context_parts, frame, lineno=None):
        """Add the lines around *lineno* to *context_parts*."""
        filename = frame.f_code.co_filename
        if lineno is None:
            lineno = frame.f_lineno

        for i in range(max(1, lineno - CONTEXT_LINES), lineno + CONTEXT_LINES + 1):
            line = linecache.getline(filename, i)
            if line:
                marker = " => " if i == lineno else "    "
                context_parts.append(f"{marker}{i:4d}: {line.rstrip()}")

    # ------------------------------------------------------------------
    # stdin/stdout plumbing
    # ------------------------------------------------------------------

    def write(self, data):
        self._output_buffer.write(data)

    def _flush_output(self):
        buffered_output = self._output_buffer.getvalue()
        if buffered_output.strip():
            self.source.receive_output(buffered_output)
        self._output_buffer = io.StringIO()
        self.stdout = self._output_buffer

    def readline(self):
        self._flush_output()
        cmd = self.source.next_command()
        return cmd.rstrip("\n") + "\n"

    def flush(self):
        pass

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def do_whereami(self, arg):
        """whereami
        Show the source around the current line."""
        context_parts = []
        self._add_source_context(context_parts, self.curframe)
        self.message("\n".join(context_parts))

    def do_locals(self, arg):
        """locals
        List the local variables of the bound frame."""
        safe_locals = self._safe_locals(self.curframe)

        if safe_locals:
            self.message("Local variables:")
            for name, value in safe_locals.items():
                self.message(f"  {name} = {self._safe_repr(value)}")
        else:
            self.message("No local variables found")

    do_ls = do_locals

    def do_p(self, arg):
        """p expression
        Print the value of the expression."""
        try:
            val = eval(arg, self.curframe.f_globals, self.curframe.f_locals)
            self.message(repr(val))
        except Exception as e:
            self.error(f"{type(e).__name__}: {e}")

    def do_pp(self, arg):
        """pp expression
        Pretty-print the value of the expression."""
        try:
            val = eval(arg, self.curframe.f_globals, self.curframe.f_locals)
            self.message(saferepr(val))
        except Exception as e:
            self.error(f"{type(e).__name__}: {e}")

    def do_exit(self, arg):
        """exit
        Leave the session and resume the program."""
        return self.do_continue(arg)

    do_quit = do_exit
    do_q = do_exit

    def default(self, line):
        """Execute *line* in the bound frame."""
        if line[:1] == "!":
            line = line[1:]

        frame = self.curframe
        frame_locals = frame.f_locals
        save_stdout = sys.stdout
        save_displayhook = sys.displayhook
        try:
            code = compile(line + "\n", "<pry>", "single")
            sys.stdout = self.stdout
            sys.displayhook = self.displayhook
            exec(code, frame.f_globals, frame_locals)
        except Exception as e:
            self.error(f"{type(e).__name__}: {e}")
        finally:
            sys.stdout = save_stdout
            sys.displayhook = save_displayhook

        _locals_to_fast(frame)

    def error(self, msg):
        self.message(f"Error: {msg}")

    # ------------------------------------------------------------------
    # Internal utility helpers
    # ------------------------------------------------------------------

    def _safe_locals(self, frame):
        """Return a copy of *frame*'s locals excluding debugger internals."""
        return {
            k: v
            for k, v in frame.f_locals.items()
            if k not in self._EXCLUDED_VARS and not k.startswith("__")
        }

    @staticmethod
    def _safe_repr(value):
        try:
            return saferepr(value)
        except Exception:
            return "<unrepresentable>"

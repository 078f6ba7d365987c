from blinker import Namespace

_signals = Namespace()

# Sent with the configuration name as sender. Receivers of ``process`` get the
# ProgressStore as ``progress`` and report through it.
process_init = _signals.signal("setup-process-init")
process = _signals.signal("setup-process")
setup_completed = _signals.signal("setup-completed")

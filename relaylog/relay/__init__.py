"""
Cross-process log relay.

A child process ships its log lines to the parent over one pipe and receives
control commands from the parent over a second pipe:

Parent process:
    from relaylog.relay import ParentRelay, RelayPipes

    pipes = RelayPipes.create()
    child = subprocess.Popen(cmd, pass_fds=pipes.child_fds())
    pipes.close_child_side()

    relay = ParentRelay(pipes.parent_messenger(), registry.engine)
    relay.start()
    relay.send_command({"log_levels": "*:DEBUG"})
    child.wait()
    relay.join()

Child process:
    from relaylog.relay import attach_child

    loop = attach_child(registry, command_fd, log_fd)
    registry.get_or_create("worker").info("hello from child")
    loop.stop_loop()
"""

from .channels import RelayPipes
from .codec import FrameCodec, JSONMarshaller, Marshaller
from .loop import LoopState, RelayLoop, attach_child
from .messenger import ChildMessenger, ParentMessenger
from .parent import ParentRelay
from .pipe import PipeEnd, Waker, make_pipe

__all__ = [
    "ChildMessenger",
    "FrameCodec",
    "JSONMarshaller",
    "LoopState",
    "Marshaller",
    "ParentMessenger",
    "ParentRelay",
    "PipeEnd",
    "RelayLoop",
    "RelayPipes",
    "Waker",
    "attach_child",
    "make_pipe",
]

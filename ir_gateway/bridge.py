"""Button-press bridge.

The controller calls the bridge for every matched signal. The bridge looks
the button up in the action table and runs its action; errors are logged
with the remote and button attached and never reach the controller thread.
"""

# Standard library imports
import logging

# Local imports
from .actions import ActionDispatcher
from .controller import ButtonPress, ControllerEvent, ControllerFault
from .core.errors import GatewayError
from .core.state import AppState

logger = logging.getLogger(__name__)


class ButtonPressBridge:
    """Controller event callback.

    Example:
        >>> bridge = ButtonPressBridge(state, dispatcher)
        >>> controller = load_controller("my_hat:IrHat", bridge)
    """

    def __init__(self, state: AppState, dispatcher: ActionDispatcher):
        self.state = state
        self.dispatcher = dispatcher

    def __call__(self, event: ControllerEvent) -> None:
        self.handle_event(event)

    def handle_event(self, event: ControllerEvent) -> None:
        if isinstance(event, ControllerFault):
            logger.error(f"controller error: {event.message}")
            return
        if not isinstance(event, ButtonPress):
            logger.warning(f"Ignoring unknown controller event: {event!r}")
            return

        try:
            self.handle_button_press(event)
        except GatewayError as e:
            logger.error(f"button {event.remote_name}:{event.button_name} action error: {e}")
        except Exception as e:
            logger.error(
                f"Error handling button {event.remote_name}:{event.button_name}: {e}",
                exc_info=True,
            )

    def handle_button_press(self, press: ButtonPress) -> bool:
        """Run the action bound to a button.

        Returns:
            True if an action ran, False if the button has none.

        Raises:
            ActionError: If the action failed.
        """
        action = self.state.config.lookup(press.remote_name, press.button_name)
        if action is None:
            logger.debug(f"no action for {press.remote_name}:{press.button_name}")
            return False

        logger.info(
            f"button {press.remote_name}:{press.button_name} -> {action.action_type} action"
        )
        self.dispatcher.dispatch(action)
        return True

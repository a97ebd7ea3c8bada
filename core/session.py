"""
Gesture session: the composition root for one prompt-sculpting session.

Architecture:
    hands -> PoseStabilityDetector -> (capture) PoseDescriptor ---------\
          -> GesturePresetDetector -> preset overrides ---> UpdateDebouncer
          -> GestureMapper.map_all -> parameter updates --/        |
          -> GestureMapper trigger                                  v
                  |                                   StructuredStateManager
                  v                                                 |
          GenerationClient (worker thread) <--- prompt snapshot ----/
                  |
                  v
          GenerationHistory + EventBus

Every component is constructed explicitly and owned by the session; use
create_session() to build one from a Config.
"""

import time
import uuid
import logging
import threading
from typing import Optional

from core.types import FrameResult, GenerationOptions, HandObservation
from core.events import EventBus, Events
from modules.control.debouncer import UpdateDebouncer
from modules.generation.client import GenerationClient
from modules.generation.errors import GenerationError
from modules.generation.history import GenerationHistory
from modules.recognition.gesture_mapper import GestureMapper
from modules.recognition.gesture_presets import GesturePresetDetector
from modules.recognition.pose_descriptor import PoseDescriptor
from modules.recognition.pose_stability import PoseStabilityDetector
from modules.state.prompt_schema import Paths
from modules.state.state_manager import StructuredStateManager
from modules.utils.logger import SessionLogger
from modules.utils.storage import JsonFileStore

logger = logging.getLogger(__name__)


class GestureSession:
    """Routes hand frames into prompt updates and generations."""

    def __init__(
        self,
        stability: PoseStabilityDetector,
        mapper: GestureMapper,
        presets: GesturePresetDetector,
        state: StructuredStateManager,
        client: GenerationClient,
        history: Optional[GenerationHistory] = None,
        descriptor: Optional[PoseDescriptor] = None,
        event_bus: Optional[EventBus] = None,
        config: Optional[dict] = None,
        debounce_config: Optional[dict] = None,
        timer_factory=threading.Timer,
        clock=time.monotonic,
    ):
        self._stability = stability
        self._mapper = mapper
        self._presets = presets
        self._state = state
        self._client = client
        self._history = history or GenerationHistory()
        self._descriptor = descriptor or PoseDescriptor()
        self._bus = event_bus or EventBus()
        self._debouncer = UpdateDebouncer(self._commit, debounce_config or {},
                                          timer_factory=timer_factory)
        self._session_log = SessionLogger()
        self._clock = clock

        config = config or {}
        self._cooldown_sec = config.get("generation_cooldown_sec", 5.0)
        self._async = config.get("async_generation", True)
        self._min_confidence = config.get("min_update_confidence", 0.5)
        self._user_id = config.get("user_id") or uuid.uuid4().hex[:8]

        # Frame state
        self._hand_present = False
        self._captured = False
        self._last_preset = None
        self._frame_count = 0

        # Generation state
        self._gen_lock = threading.Lock()
        self._generating = False
        self._last_generation_at = None
        self._worker = None
        self._last_error = None

    # =========================================================================
    # Frame Processing
    # =========================================================================

    def process_frame(self, hands) -> FrameResult:
        """Run one frame of hand observations through every detector.

        Args:
            hands: HandObservation list (or raw landmark containers),
                   primary hand first
        """
        result = FrameResult()
        hands = [h if isinstance(h, HandObservation) else HandObservation(h)
                 for h in (hands or [])]
        result.hand_count = len(hands)
        self._frame_count += 1

        if not hands:
            if self._hand_present:
                self._hand_present = False
                self._stability.reset()
                self._mapper.reset()
                self._captured = False
                self._last_preset = None
                self._bus.emit(Events.HAND_LOST)
            return result

        if not self._hand_present:
            self._hand_present = True
            self._bus.emit(Events.HAND_DETECTED, hand_count=len(hands))

        landmark_sets = [h.landmarks for h in hands]
        primary = landmark_sets[0]

        # --- 1. Stability / pose capture ---
        result.stability = self._stability.update(primary)
        if not result.stability.is_stable:
            self._captured = False
        elif self._stability.should_capture() and not self._captured:
            self._captured = True
            result.captured = self._capture_pose(landmark_sets)

        # --- 2. Presets ---
        detection = self._presets.detect_preset_gesture(primary)
        result.preset = detection
        if detection.matched:
            if detection.type is not self._last_preset:
                for path, value in detection.preset.overrides.items():
                    self._debouncer.queue(path, value)
                logger.info("Preset '%s' applied", detection.preset.name)
                self._bus.emit(Events.PRESET_APPLIED,
                               preset_type=detection.type, preset=detection.preset)
        else:
            # --- 3. Continuous channels (paused while a preset pose is held) ---
            updates = [u for u in self._mapper.map_all(landmark_sets)
                       if u.confidence >= self._min_confidence]
            for update in updates:
                self._debouncer.push(update)
            result.updates = updates
        self._last_preset = detection.type

        # --- 4. Generation trigger ---
        if self._mapper.detect_generation_trigger(primary):
            result.triggered = self.trigger_generation()

        return result

    def _capture_pose(self, landmark_sets) -> bool:
        text = self._descriptor.describe(landmark_sets)
        commit = self._commit(Paths.OBJECT_ORIENTATION, text, source="pose")
        logger.info("Pose captured: %s", text)
        self._bus.emit(Events.POSE_CAPTURED, descriptor=text,
                       landmarks=self._stability.get_current_landmarks())
        return commit.success

    def _commit(self, path, value, source="gesture"):
        """Write one parameter through the state manager and announce it."""
        timestamp = time.time()
        result = self._state.update(path, value, timestamp=timestamp)
        self._session_log.log_parameter(path, value, result.success, source)
        if result.success:
            self._bus.emit(Events.PARAMETER_COMMITTED, path=path, value=value,
                           timestamp=timestamp, user_id=self._user_id)
        else:
            self._bus.emit(Events.PARAMETER_REJECTED, path=path, value=value,
                           error=result.error)
        return result

    def apply_patch(self, patch: dict):
        """Apply a collaboration peer's {path, value, timestamp, user_id} patch."""
        result = self._state.apply_patch(patch)
        self._session_log.log_parameter(patch.get("path"), patch.get("value"),
                                        result.success, source="peer")
        return result

    # =========================================================================
    # Generation
    # =========================================================================

    def trigger_generation(self, options: Optional[GenerationOptions] = None) -> bool:
        """Start a generation unless one is running or the cooldown is active.

        Returns:
            True when a generation was started
        """
        with self._gen_lock:
            if self._generating:
                logger.info("Generation already in progress, trigger ignored")
                return False
            now = self._clock()
            if (self._last_generation_at is not None
                    and now - self._last_generation_at < self._cooldown_sec):
                logger.info("Generation cooldown active, trigger ignored")
                return False
            self._generating = True
            self._last_generation_at = now

        self._bus.emit(Events.GENERATION_TRIGGERED)
        if self._async:
            self._worker = threading.Thread(
                target=self._run_generation, args=(options,), daemon=True,
            )
            self._worker.start()
        else:
            self._run_generation(options)
        return True

    def _run_generation(self, options):
        # Pending gesture values belong in this generation
        self._debouncer.flush()
        prompt = self._state.get_prompt()
        self._bus.emit(Events.GENERATION_STARTED, prompt=prompt)
        start = time.perf_counter()
        try:
            result = self._client.generate(prompt, options)
        except GenerationError as e:
            self._last_error = e
            self._session_log.log_generation(False, f"{e.code}: {e.message}",
                                             time.perf_counter() - start)
            self._bus.emit(Events.GENERATION_FAILED, error=e)
            return None
        finally:
            with self._gen_lock:
                self._generating = False

        self._last_error = None
        self._history.add(result)
        self._session_log.log_generation(True, result.image_url, time.perf_counter() - start)
        self._bus.emit(Events.GENERATION_COMPLETED, result=result)
        return result

    def wait_for_generation(self, timeout: Optional[float] = None) -> bool:
        """Block until the background generation finishes.

        Returns:
            False if it is still running after timeout
        """
        worker = self._worker
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def reset(self):
        """Discard detector history and pending updates; the prompt is kept."""
        self._debouncer.cancel()
        self._stability.reset()
        self._mapper.reset()
        self._hand_present = False
        self._captured = False
        self._last_preset = None

    def close(self, timeout: float = 5.0):
        """Commit pending updates and release resources."""
        self._debouncer.flush()
        self.wait_for_generation(timeout)
        self._client.close()
        logger.info("Session closed after %d frames", self._frame_count)

    @property
    def state(self) -> StructuredStateManager:
        return self._state

    @property
    def client(self) -> GenerationClient:
        return self._client

    @property
    def presets(self) -> GesturePresetDetector:
        return self._presets

    @property
    def history(self) -> GenerationHistory:
        return self._history

    @property
    def events(self) -> EventBus:
        return self._bus

    @property
    def debouncer(self) -> UpdateDebouncer:
        return self._debouncer

    @property
    def session_log(self) -> SessionLogger:
        return self._session_log

    @property
    def is_generating(self) -> bool:
        with self._gen_lock:
            return self._generating

    @property
    def last_error(self) -> Optional[GenerationError]:
        return self._last_error

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def frame_count(self) -> int:
        return self._frame_count


def create_session(config, api_key: Optional[str] = None, http_session=None,
                   store=None, event_bus: Optional[EventBus] = None) -> GestureSession:
    """Build a fully wired session from a Config.

    Args:
        config: modules.utils.config.Config
        api_key: Generation service token (overrides config / environment)
        http_session: requests.Session for the generation client
        store: Key-value store for presets; defaults to a JsonFileStore
               under the configured storage directory
        event_bus: Shared bus; a new one is created when omitted
    """
    if store is None:
        store = JsonFileStore(config.get("storage.directory", "data/store"))

    presets = GesturePresetDetector(config.presets, store=store)
    presets.load_presets()

    state = StructuredStateManager()
    state.initialize(config.get("prompt"))

    return GestureSession(
        stability=PoseStabilityDetector(config.stability),
        mapper=GestureMapper(config.mapper),
        presets=presets,
        state=state,
        client=GenerationClient(config.generation, api_key=api_key, session=http_session),
        history=GenerationHistory(config.session),
        descriptor=PoseDescriptor(config.pose_descriptor),
        event_bus=event_bus,
        config=config.session,
        debounce_config=config.debouncing,
    )

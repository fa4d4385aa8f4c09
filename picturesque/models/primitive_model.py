from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Tuple
import math

import numpy as np

from .shapes import Shape, ShapeType, random_shape


@dataclass(frozen=True)
class State:
    """A candidate: shape + alpha, and the model energy if it were added."""
    shape: Shape
    alpha: int
    energy: float


class PrimitiveModel:
    """
    Rebuilds a target image from layered, semi-transparent shapes.

    The model keeps a float canvas the size of the (small) target.  Each
    `step()` searches for the one shape that lowers the RMS difference between
    canvas and target the most, paints it, and remembers it so the whole
    picture can be rendered again at any output size.

    Randomness comes only from `rng`.  Worker threads get their own child
    generators drawn from it before they start, and results are compared in
    worker order, so a fixed seed gives identical pictures however the threads
    are scheduled.
    """

    def __init__(
        self,
        target: np.ndarray,
        background,
        *,
        output_size: int = 1024,
        workers: int = 1,
        rng: np.random.Generator = None,
        candidates: int = 200,
        climbs: int = 4,
        age: int = 50,
    ):
        self.target = target.astype(np.float32)
        self.height, self.width = target.shape[:2]
        self.background = np.asarray(background, dtype=np.float32)
        self.current = np.empty_like(self.target)
        self.current[:] = self.background
        self.sq_error = float(np.square(self.target - self.current).sum(dtype=np.float64))

        self.output_size = output_size
        self.workers = max(1, int(workers))
        self.rng = rng if rng is not None else np.random.default_rng()
        self.candidates = max(1, candidates)
        self.climbs = max(1, climbs)
        self.age = max(1, age)

        self.shapes: List[Shape] = []
        self.colors: List[Tuple[int, int, int]] = []
        self.alphas: List[int] = []
        self.scores: List[float] = [self.score]

    # ─── Scoring ───────────────────────────────────────────────────
    @property
    def score(self) -> float:
        """Normalised RMS difference between canvas and target, 0 = perfect."""
        return self._normalise(self.sq_error)

    def _normalise(self, sq_error: float) -> float:
        return math.sqrt(max(sq_error, 0.0) / (self.width * self.height * 3)) / 255.0

    def _fit(self, shape: Shape, alpha: int):
        """Pixels covered by `shape`, the best colour for them and the change in squared error."""
        region = shape.mask(self.width, self.height)
        if region is None:
            return None
        y0, x0, m = region
        ys, xs = np.nonzero(m)
        if ys.size == 0:
            return None
        ys += y0
        xs += x0

        t = self.target[ys, xs]
        c = self.current[ys, xs]
        a = alpha / 255.0
        # colour that, blended at alpha over the canvas, lands closest to the target
        color = np.clip(np.rint(((t - c) / a + c).mean(axis=0)), 0, 255)
        new = c + (color - c) * a
        delta = float(np.square(t - new).sum(dtype=np.float64) - np.square(t - c).sum(dtype=np.float64))
        return ys, xs, color, delta

    def energy(self, shape: Shape, alpha: int) -> float:
        fit = self._fit(shape, alpha)
        return self._normalise(self.sq_error + (fit[3] if fit is not None else 0.0))

    # ─── Search ────────────────────────────────────────────────────
    def _random_state(self, shape_type: ShapeType, alpha: int, rng: np.random.Generator) -> State:
        a = alpha if alpha > 0 else 128
        shape = random_shape(shape_type, rng, self.width, self.height)
        return State(shape, a, self.energy(shape, a))

    def _mutate(self, state: State, rng: np.random.Generator, mutate_alpha: bool) -> State:
        shape = state.shape.mutate(rng, self.width, self.height)
        a = state.alpha
        if mutate_alpha:
            a = int(np.clip(a + rng.integers(-10, 11), 1, 255))
        return State(shape, a, self.energy(shape, a))

    def hill_climb(self, state: State, age: int, rng: np.random.Generator, mutate_alpha: bool = False) -> State:
        """Keep mutating the best state; stop after `age` mutations in a row fail to improve it."""
        best, fails = state, 0
        while fails < age:
            candidate = self._mutate(best, rng, mutate_alpha)
            if candidate.energy < best.energy:
                best, fails = candidate, 0
            else:
                fails += 1
        return best

    def _run_worker(self, shape_type, alpha, n, climbs, rng) -> State:
        best = None
        for _ in range(climbs):
            state = min((self._random_state(shape_type, alpha, rng) for _ in range(n)), key=lambda s: s.energy)
            state = self.hill_climb(state, self.age, rng, alpha == 0)
            if best is None or state.energy < best.energy:
                best = state
        return best

    def best_state(self, shape_type: ShapeType, alpha: int) -> State:
        seeds = self.rng.integers(0, 2 ** 63 - 1, size=self.workers)
        per_worker = max(1, self.candidates // self.workers)
        climbs = max(1, self.climbs // self.workers)
        jobs = []
        for i, seed in enumerate(seeds):
            n = per_worker + (self.candidates % self.workers if i == 0 else 0)
            jobs.append((shape_type, alpha, n, climbs, np.random.default_rng(int(seed))))

        if self.workers == 1:
            results = [self._run_worker(*jobs[0])]
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                results = list(pool.map(lambda job: self._run_worker(*job), jobs))
        # min() keeps the first of equal energies, i.e. the lowest worker index
        return min(results, key=lambda s: s.energy)

    # ─── Canvas updates ────────────────────────────────────────────
    def add(self, shape: Shape, alpha: int) -> None:
        fit = self._fit(shape, alpha)
        if fit is None:
            return
        ys, xs, color, delta = fit
        c = self.current[ys, xs]
        self.current[ys, xs] = c + (color - c) * (alpha / 255.0)
        self.sq_error += delta

        self.shapes.append(shape)
        self.colors.append(tuple(int(v) for v in color))
        self.alphas.append(alpha)
        self.scores.append(self.score)

    def step(self, shape_type: ShapeType, alpha: int, repeat: int = 0) -> int:
        """
        Add the best shape found this round, then up to `repeat` more shapes
        climbed from it while that keeps improving the picture.

        Returns:
            (int): Number of shapes on the canvas.
        """
        state = self.best_state(shape_type, alpha)
        self.add(state.shape, state.alpha)

        for _ in range(repeat):
            state = State(state.shape, state.alpha, self.energy(state.shape, state.alpha))
            climbed = self.hill_climb(state, self.age, self.rng, alpha == 0)
            if climbed.energy == state.energy:
                break
            self.add(climbed.shape, climbed.alpha)
            state = climbed

        return len(self.shapes)

    # ─── Output ────────────────────────────────────────────────────
    def output_dimensions(self, output_size: int = None) -> Tuple[int, int]:
        scale = (output_size or self.output_size) / max(self.width, self.height)
        return max(1, round(self.width * scale)), max(1, round(self.height * scale))

    def render(self, output_size: int = None) -> np.ndarray:
        """Paint background and all shapes, anti-aliased, with the longer side = output_size."""
        out_w, out_h = self.output_dimensions(output_size)
        scale = out_w / self.width
        canvas = np.empty((out_h, out_w, 3), np.float32)
        canvas[:] = self.background

        for shape, color, alpha in zip(self.shapes, self.colors, self.alphas):
            region = shape.mask(out_w, out_h, scale=scale, antialias=True)
            if region is None:
                continue
            y0, x0, m = region
            a = (m.astype(np.float32) / 255.0 * (alpha / 255.0))[:, :, None]
            patch = canvas[y0:y0 + m.shape[0], x0:x0 + m.shape[1]]
            patch += (np.asarray(color, np.float32) - patch) * a

        return np.clip(np.rint(canvas), 0, 255).astype(np.uint8)

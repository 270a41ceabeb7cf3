"""Point-mass vehicle dynamics with one rotational degree of freedom.

One explicit Euler step per call. The integrator does not clamp dt: the
simulation loop is expected to cap it (Session uses MAX_DT) so a frame
hitch cannot blow up the step. Terrain contact is not handled here; the
judge runs after every integration step.

Conventions: screen coordinates (y DOWN), angle 0 = nose up, positive
angle = nose tilted right. The nose vector is (sin(angle), -cos(angle)),
so thrusting at a positive angle pushes the craft right and up.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from moonlander.src.physics_config import PhysicsParams


VEHICLE_RADIUS = 14.0
SPAWN_Y = 90.0
SPAWN_VY = 2.0
SPAWN_VX_SPREAD = 8.0  # initial vx drawn from [-spread, spread]

WALL_PADDING = 2.0  # extra clearance on top of the radius at the side walls
WALL_RESTITUTION = 0.2
DAMPING_REFERENCE_HZ = 60.0


@dataclass
class ControlInput:
    """One tick of control intent. Exactly one producer per tick."""

    left: bool = False
    right: bool = False
    thrust: bool = False

    def as_array(self) -> np.ndarray:
        return np.array([self.left, self.right, self.thrust], dtype=np.int8)

    @classmethod
    def from_array(cls, action) -> ControlInput:
        """Build from a (left, right, thrust) sequence of truthy values."""
        left, right, thrust = (bool(a) for a in action)
        return cls(left=left, right=right, thrust=thrust)


@dataclass
class Vehicle:
    """Mutable craft state.

    Attributes:
        x, y: Centre position in px (screen coords).
        vx, vy: Velocity in px/s. vy > 0 means descending.
        angle: Orientation in rad, kept in (-pi, pi].
        omega: Angular velocity in rad/s.
        fuel: Remaining fuel units, never negative.
        radius: Collision radius in px.
    """

    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    angle: float = 0.0
    omega: float = 0.0
    fuel: float = 100.0
    radius: float = VEHICLE_RADIUS

    @property
    def bottom(self) -> float:
        return self.y + self.radius

    @property
    def speed(self) -> float:
        return math.hypot(self.vx, self.vy)

    def copy(self) -> Vehicle:
        return Vehicle(**vars(self))

    def as_array(self) -> np.ndarray:
        return np.array(
            [self.x, self.y, self.vx, self.vy, self.angle, self.omega, self.fuel],
            dtype=np.float64,
        )


def make_vehicle(
    world_width: float,
    fuel: float,
    rng: np.random.Generator | None = None,
) -> Vehicle:
    """Spawn a craft at the top centre with a small random drift."""
    if rng is None:
        rng = np.random.default_rng()
    return Vehicle(
        x=world_width * 0.5,
        y=SPAWN_Y,
        vx=float(rng.uniform(-1.0, 1.0)) * SPAWN_VX_SPREAD,
        vy=SPAWN_VY,
        fuel=float(fuel),
    )


def wrap_angle(angle: float) -> float:
    """Map any angle into (-pi, pi]."""
    a = math.fmod(angle + math.pi, 2.0 * math.pi)
    if a <= 0.0:
        a += 2.0 * math.pi
    return a - math.pi


def angle_diff(a: float, b: float) -> float:
    """Shortest signed rotation taking b to a."""
    return wrap_angle(a - b)


def integrate(
    vehicle: Vehicle,
    control: ControlInput,
    params: PhysicsParams,
    dt: float,
    world_width: float,
) -> Vehicle:
    """Advance the vehicle by one Euler step of dt seconds, in place.

    Main engine and rotation draw fuel independently and can both burn in
    the same tick. Air damping is applied once per tick regardless of dt;
    angular damping is normalised to a 60 Hz frame.

    Args:
        vehicle: State to mutate.
        control: Requested left/right/thrust for this tick.
        params: Physics bundle for the active difficulty.
        dt: Timestep in seconds. dt <= 0 is a no-op.
        world_width: Width of the world, for the soft side walls.

    Returns:
        The same vehicle object, for chaining.
    """
    if dt <= 0:
        return vehicle

    ax = 0.0
    ay = params.gravity

    if control.thrust and vehicle.fuel > 0:
        ax += params.main_thrust_accel * math.sin(vehicle.angle)
        ay += params.main_thrust_accel * -math.cos(vehicle.angle)
        vehicle.fuel = max(0.0, vehicle.fuel - params.fuel_burn_rate_main * dt)

    if (control.left or control.right) and vehicle.fuel > 0:
        vehicle.fuel = max(0.0, vehicle.fuel - params.fuel_burn_rate_rotation * dt)
    # Torque needs fuel left after this tick's draw.
    if control.left and vehicle.fuel > 0:
        vehicle.omega -= params.rotational_accel * dt
    if control.right and vehicle.fuel > 0:
        vehicle.omega += params.rotational_accel * dt

    vehicle.vx += ax * dt
    vehicle.vy += ay * dt
    # Per tick, not per second.
    vehicle.vx *= 1.0 - params.air_damping
    vehicle.vy *= 1.0 - params.air_damping

    vehicle.x += vehicle.vx * dt
    vehicle.y += vehicle.vy * dt

    vehicle.angle += vehicle.omega * dt
    vehicle.omega *= params.angular_damping ** (dt * DAMPING_REFERENCE_HZ)
    vehicle.angle = wrap_angle(vehicle.angle)

    margin = vehicle.radius + WALL_PADDING
    if vehicle.x < margin:
        vehicle.x = margin
        vehicle.vx = abs(vehicle.vx) * WALL_RESTITUTION
    elif vehicle.x > world_width - margin:
        vehicle.x = world_width - margin
        vehicle.vx = -abs(vehicle.vx) * WALL_RESTITUTION

    return vehicle

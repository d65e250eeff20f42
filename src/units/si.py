"""
SI Dimensions and Unit Literals
================================
Named dimensions and coherent unit literals used by the drive model.

Unit literals are unit-magnitude quantities; scale them to build values:

    dt = 0.005 * S
    wheel_radius = 0.0762 * M
    resistance = 12. * V / 133. / A

Angles are dimensionless (rad = 1), so angular velocity has dimension
1/time and shares the ``HZ`` literal.
"""

from __future__ import annotations

from .quantity import DIMENSIONLESS, Dimension, Quantity


# Base dimensions
LENGTH = Dimension(length=1)
MASS = Dimension(mass=1)
TIME = Dimension(time=1)
CURRENT = Dimension(current=1)
TEMPERATURE = Dimension(temperature=1)
AMOUNT = Dimension(amount=1)
LUMINOSITY = Dimension(luminosity=1)

# Kinematics
VELOCITY = LENGTH.divide(TIME)
ACCELERATION = VELOCITY.divide(TIME)
FREQUENCY = DIMENSIONLESS.divide(TIME)
ANGULAR_VELOCITY = FREQUENCY
ANGULAR_ACCELERATION = ANGULAR_VELOCITY.divide(TIME)

# Mechanics
FORCE = MASS.multiply(ACCELERATION)
TORQUE = FORCE.multiply(LENGTH)
ENERGY = TORQUE
POWER = ENERGY.divide(TIME)
MOMENT_OF_INERTIA = MASS.multiply(LENGTH.power(2))

# Electrical
VOLTAGE = POWER.divide(CURRENT)
RESISTANCE = VOLTAGE.divide(CURRENT)
INDUCTANCE = RESISTANCE.multiply(TIME)
BACK_EMF_CONSTANT = VOLTAGE.multiply(TIME)
TORQUE_CONSTANT = TORQUE.divide(CURRENT)


# Unit literals
M = Quantity(1.0, LENGTH)
KG = Quantity(1.0, MASS)
S = Quantity(1.0, TIME)
A = Quantity(1.0, CURRENT)
K = Quantity(1.0, TEMPERATURE)
MOL = Quantity(1.0, AMOUNT)
CD = Quantity(1.0, LUMINOSITY)
ONE = Quantity(1.0, DIMENSIONLESS)

MPS = M / S
MPS2 = MPS / S
HZ = 1.0 / S
N = KG * MPS2
NM = N * M
J = NM
W = J / S
V = W / A
OHM = V / A
H = OHM * S
KGM2 = KG * M * M

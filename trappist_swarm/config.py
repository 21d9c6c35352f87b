"""Configuration settings for the Flask application and the swarm simulation."""
import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        os.environ.get('SQLALCHEMY_DATABASE_URI') or \
        'sqlite:///trappist_swarm.db'
    LOG_LEVEL = os.environ.get('SWARM_LOG_LEVEL') or 'INFO'

    # Time system: one tick is one simulated second
    # 480 ticks make a game day (20 ticks per in-game hour)
    TICKS_PER_DAY = 480
    TICKS_PER_HOUR = 20
    ORDER_REEVALUATION_INTERVAL = 10  # ticks between order reassignment

    # Egg production (ticks)
    EGG_LAYING_TICKS = 10
    INCUBATION_TICKS = 30
    MATURATION_TICKS = 15
    TOTAL_SPAWN_TICKS = EGG_LAYING_TICKS + INCUBATION_TICKS + MATURATION_TICKS
    EGG_COST = 10  # queen energy per egg

    # Workers
    WORKER_HEALTH_MAX = 100
    WORKER_HEALTH_DECAY = 0.36  # per tick
    WORKER_CARGO_MAX = 10
    WORKER_UPKEEP_ENERGY = 0.1  # cargo burned per tick
    WORKER_STARVATION_DAMAGE = 5  # health lost per tick with empty cargo
    WORKER_SPAWN_COST = 5  # biomass per worker, used for recycling
    BASE_GATHER_RATE = 0.2

    # Queens
    QUEEN_BASE_CAPACITY = 20
    QUEEN_ENERGY_MAX = 100
    QUEEN_UPKEEP = 0.5

    # Population dynamics
    OVERLOAD_EXPONENT = 4
    STARVATION_COEFFICIENT = 0.5
    RECYCLE_EFFICIENCY = 0.7
    EQUILIBRIUM_LOAD = 1.2  # workers per unit of neural capacity at rest
    EQUILIBRIUM_TREND_THRESHOLD = 2

    # Catch-up approximation (per elapsed day)
    CATCH_UP_GROWTH_RATE = 0.1
    CATCH_UP_CRASH_RATE = 0.2
    CATCH_UP_CRASH_THRESHOLD = 1.5

    # Retention windows for player-facing history
    DAILY_STATS_WINDOW = 30
    LOG_WINDOW = 200

    # Orbital mechanics
    AU_IN_KM = 149597870.7
    KEPLER_MAX_ITERATIONS = 6
    KEPLER_TOLERANCE = 1e-10

    # World generation
    ZONE_TARGET_COUNT = 384
    HOME_PLANET_ID = 'asimov'

class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    LOG_LEVEL = os.environ.get('SWARM_LOG_LEVEL') or 'DEBUG'

class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False

class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'

config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}

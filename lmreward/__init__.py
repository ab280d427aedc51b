"""
lmreward: eligibility-gated liquidity-mining rewards for a lending protocol.

Core components live in submodules:

    from lmreward.eligibility import EligibilityManager
    from lmreward.rewards import RewardDistributorManager, RewardDistributor
    from lmreward.staking import BLPStakingPool, BLPReward
    from lmreward.ops import build_deployment
"""

__version__ = "1.0.0"


# Lazy imports keep `import lmreward` light for the CLI
def __getattr__(name):
    if name == 'EligibilityManager':
        from .eligibility import EligibilityManager
        return EligibilityManager
    elif name == 'RewardDistributorManager':
        from .rewards import RewardDistributorManager
        return RewardDistributorManager
    elif name == 'RewardDistributor':
        from .rewards import RewardDistributor
        return RewardDistributor
    elif name == 'build_deployment':
        from .ops import build_deployment
        return build_deployment
    raise AttributeError(f"module 'lmreward' has no attribute {name!r}")

__all__ = ['EligibilityManager', 'RewardDistributorManager', 'RewardDistributor', 'build_deployment']

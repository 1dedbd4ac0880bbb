"""Crash ball — first receiver hits the gain line off a short pass."""

SCRIPT = {
    "setup": {"defaults": [1, 2]},
    "ball": "team1-2",
    "steps": [
        {
            "moves": {
                "team1-2": (339.0, 340.0),
                "team1-3": (420.0, 320.0),
            },
            "pass_to": "team1-3",
        },
        {
            "moves": {
                "team1-3": (430.0, 290.0),
                "team1-4": (520.0, 320.0),
            },
            "touch": True,
        },
    ],
}

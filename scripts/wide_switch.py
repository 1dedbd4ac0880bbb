"""Wide switch — ball moves along the line, then the blindside winger cuts back."""

SCRIPT = {
    "setup": {"defaults": [1], "spawn": {"2": 5}},
    "steps": [
        {
            "moves": {"team1-3": (470.0, 350.0)},
            "pass_to": "team1-3",
        },
        {
            "moves": {
                "team1-4": (600.0, 340.0),
                "team1-5": (680.0, 330.0),
            },
            "pass_to": "team1-4",
        },
        {
            "moves": {"team1-0": (300.0, 300.0)},
            "touch": True,
        },
    ],
}

from dataclasses import dataclass


@dataclass
class UpsertConfig:
    detect_changes: bool = True
    long_query_s: float = 0.0

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.long_query_s < 0:
            raise ValueError(
                "long_query_s must be >= 0; use 0 to disable slow statement logging"
            )

class LoadtestError(Exception):
    pass


class UnknownTokenError(LoadtestError):
    def __init__(self, token, *args):
        self.token = token
        super().__init__(*args)

    def __str__(self):
        return f"Unknown token: {self.token}"


class EthereumError(LoadtestError):
    pass


class PriorityOpNotFound(LoadtestError):
    def __init__(self, tx_hash, *args):
        self.tx_hash = tx_hash
        super().__init__(*args)

    def __str__(self):
        return f"No priority operation found in transaction {self.tx_hash}"

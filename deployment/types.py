import click


class MinInt(click.ParamType):
    name = "minint"

    def __init__(self, min_value):
        self.min_value = min_value

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            ivalue = value
        else:
            try:
                ivalue = int(value)
            except ValueError:
                self.fail(f"{value} is not a valid integer", param, ctx)
        if ivalue < self.min_value:
            self.fail(
                f"{value} is less than the minimum allowed value of {self.min_value}", param, ctx
            )
        return ivalue


class LogicalContractName(click.ParamType):
    """A contract name as used in deployment profiles: lower case, no '$' prefix."""

    name = "logical_contract_name"

    def convert(self, value, param, ctx):
        value = value.strip()
        if not value or value.startswith("$") or value != value.lower():
            self.fail(f"'{value}' is not a logical contract name (e.g. 'token')", param, ctx)
        return value

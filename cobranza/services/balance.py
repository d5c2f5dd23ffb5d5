# cobranza/services/balance.py


def closing_balance(
    opening: float,
    collection: float,
    incoming: float,
    outgoing: float,
    loan: float,
    expense: float,
) -> float:
    """
    Caja final = inicial + cobrado + ingresos - retiros - prestado - gastos.

    Única fórmula de cierre del sistema: filas diarias, filas por cobrador y
    acumulados del ranking pasan todos por acá.
    """
    return opening + collection + incoming - outgoing - loan - expense

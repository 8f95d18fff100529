from salesrecon.schemas.invoice import LineInput
from salesrecon.schemas.order import SalesOrderCreate


def bitumen_line(quantity, rate="45000", tax_rate="5", hsn_code="27132000", discount="0"):
    return LineInput(
        description="VG-30 Bitumen",
        hsn_code=hsn_code,
        quantity=quantity,
        unit="MT",
        rate=rate,
        discount_percent=discount,
        tax_rate=tax_rate,
    )


def new_order(engine, order_number="SO/338/25-26", quantity="100", rate="45000", buyer_name="Brahmaputra Infra"):
    return engine.create_order(SalesOrderCreate(
        order_number=order_number,
        buyer_name=buyer_name,
        ordered_quantity=quantity,
        rate=rate,
    ))

"""
PDV Sale Schemas

Read-only projections of the PDV backend payloads. Field names on the wire
are Portuguese; attributes are English with aliases.
"""
from typing import Any, Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, field_validator


class Payment(BaseModel):
    """One settlement line of a sale"""
    id: Optional[str] = None
    amount: float = Field(0.0, alias="valor")
    payment_method_id: Optional[str] = Field(None, alias="meioPagamentoId")
    canceled: bool = Field(False, alias="cancelado")
    canceled_at: Optional[datetime] = Field(None, alias="dataCancelamento")

    @field_validator("amount", mode="before")
    @classmethod
    def _null_amount(cls, v: Any) -> Any:
        return 0.0 if v is None else v

    @field_validator("canceled", mode="before")
    @classmethod
    def _null_canceled(cls, v: Any) -> Any:
        return False if v is None else v

    @property
    def is_canceled(self) -> bool:
        """Either cancellation signal excludes the payment from reports"""
        return self.canceled or self.canceled_at is not None

    class Config:
        populate_by_name = True
        coerce_numbers_to_str = True


class ProductLineItem(BaseModel):
    """One product line of a sale"""
    product_id: str = Field(alias="produtoId")
    quantity: int = Field(0, alias="quantidade")
    final_value: float = Field(0.0, alias="valorFinal")

    @field_validator("quantity", "final_value", mode="before")
    @classmethod
    def _null_as_zero(cls, v: Any) -> Any:
        return 0 if v is None else v

    class Config:
        populate_by_name = True
        coerce_numbers_to_str = True


class Sale(BaseModel):
    """Sale detail as returned by GET /operacao-pdv/vendas/{id}"""
    id: str
    status: Optional[str] = None
    finalized_at: Optional[datetime] = Field(None, alias="dataFinalizacao")
    canceled_at: Optional[datetime] = Field(None, alias="dataCancelamento")
    change_given: float = Field(0.0, alias="troco")
    final_value: Optional[float] = Field(None, alias="valorFinal")
    payments: List[Payment] = Field(default_factory=list, alias="pagamentos")
    line_items: List[ProductLineItem] = Field(default_factory=list, alias="produtosLancados")

    @field_validator("change_given", mode="before")
    @classmethod
    def _null_change(cls, v: Any) -> Any:
        return 0.0 if v is None else v

    @field_validator("payments", "line_items", mode="before")
    @classmethod
    def _null_lines(cls, v: Any) -> Any:
        return [] if v is None else v

    class Config:
        populate_by_name = True
        coerce_numbers_to_str = True


class SaleListItem(BaseModel):
    id: str

    class Config:
        coerce_numbers_to_str = True


class SaleListPage(BaseModel):
    """One page of GET /operacao-pdv/vendas"""
    items: List[SaleListItem] = Field(default_factory=list)
    count: Optional[int] = None
    total_pages: Optional[int] = Field(None, alias="totalPages")
    limit: Optional[int] = None

    @field_validator("items", mode="before")
    @classmethod
    def _null_items(cls, v: Any) -> Any:
        return [] if v is None else v

    class Config:
        populate_by_name = True


class PaymentMethod(BaseModel):
    """Payment method metadata"""
    id: str
    display_name: str = Field(alias="nome")
    fiscal_payment_form: Optional[str] = Field(None, alias="formaPagamentoFiscal")

    @property
    def is_cash(self) -> bool:
        """Cash ("dinheiro") by display name or fiscal classification"""
        for label in (self.display_name, self.fiscal_payment_form):
            if label and "dinheiro" in label.lower():
                return True
        return False

    class Config:
        populate_by_name = True
        coerce_numbers_to_str = True


class PaymentMethodAggregate(BaseModel):
    """Net revenue for one payment method"""
    method_name: str
    net_revenue: float
    transaction_count: int
    percent_of_total: float = 0.0


class PaymentMethodsReport(BaseModel):
    methods: List[PaymentMethodAggregate]
    grand_total: float


class ProductAggregate(BaseModel):
    """Ranked best-selling product"""
    rank: int
    product_name: str
    total_quantity: int
    total_revenue: float


class TopProductsReport(BaseModel):
    products: List[ProductAggregate]
    total_unique_products: int


class SalesEvolutionPoint(BaseModel):
    """Revenue for one local calendar day"""
    date: str
    value: float
    label: str


class SalesEvolutionReport(BaseModel):
    points: List[SalesEvolutionPoint]
    total: float


class ReportPeriod(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class DashboardReport(BaseModel):
    """All dashboard aggregates computed from a single fetch"""
    period: ReportPeriod
    sales_considered: int
    sales_rejected: int
    payment_methods: PaymentMethodsReport
    top_products: TopProductsReport
    evolution: SalesEvolutionReport

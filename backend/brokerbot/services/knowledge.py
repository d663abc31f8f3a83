"""
Insurance Knowledge Base

Curated facts for the five product lines the brokerage works with.
Injected into the answer prompt when the broker's message mentions a product,
so the model answers from this list instead of inventing coverage terms.

Items tagged [ASSESSORIA] still need confirmation by the brokerage before
being quoted to a client.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class ProductType(str, Enum):
    SAUDE = "saude"
    AUTO = "auto"
    VIDA = "vida"
    RESIDENCIAL = "residencial"
    EMPRESARIAL = "empresarial"


@dataclass
class InsuranceFacts:
    """Reference facts for a single product line."""
    product_name: str
    description: str
    coverages: List[str] = field(default_factory=list)
    exclusions: List[str] = field(default_factory=list)
    acceptance_rules: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    def to_prompt(self) -> str:
        """Render as a prompt section."""
        sections = [f"Produto: {self.product_name}", self.description]
        for title, items in (
            ("Coberturas comuns", self.coverages),
            ("Exclusoes comuns", self.exclusions),
            ("Regras de aceitacao", self.acceptance_rules),
            ("Observacoes", self.notes),
        ):
            if items:
                sections.append(f"{title}:\n" + "\n".join(f"- {item}" for item in items))
        return "\n\n".join(sections)


INSURANCE_FACTS: Dict[ProductType, InsuranceFacts] = {
    ProductType.SAUDE: InsuranceFacts(
        product_name="Plano de Saude",
        description="Cobre despesas medicas, hospitalares e ambulatoriais conforme o plano contratado.",
        coverages=[
            "Consultas com clinicos e especialistas",
            "Internacao em enfermaria ou apartamento, conforme o plano",
            "Cirurgias previstas no rol da ANS",
            "Exames laboratoriais e de imagem",
            "Pronto-socorro e urgencias",
        ],
        exclusions=[
            "Procedimentos esteticos sem carater reparador",
            "Medicamentos de uso continuo fora da internacao",
            "Tratamentos experimentais",
        ],
        acceptance_rules=[
            "Declaracao de saude obrigatoria; algumas operadoras pedem exames admissionais",
            "Doencas preexistentes podem ter cobertura parcial temporaria [ASSESSORIA: regras por operadora]",
            "Faixa etaria e numero de vidas definem o preco [ASSESSORIA: tabela vigente]",
        ],
        notes=[
            "Mensalidades e carencias variam por operadora e rede credenciada",
            "Planos coletivos empresariais seguem regras proprias da ANS",
        ],
    ),
    ProductType.AUTO: InsuranceFacts(
        product_name="Seguro Auto",
        description="Protege o veiculo contra colisao, roubo e danos a terceiros.",
        coverages=[
            "Colisao, incendio, roubo e furto",
            "Responsabilidade civil facultativa (danos materiais e corporais)",
            "Assistencia 24h com guincho e chaveiro",
            "Carro reserva, conforme apolice",
        ],
        exclusions=[
            "Condutor sem CNH valida",
            "Participacao em competicoes ou rachas",
            "Sinistro sob efeito de alcool",
            "Desgaste natural e falhas mecanicas",
        ],
        acceptance_rules=[
            "Perfil do condutor principal e CEP de pernoite definem o premio",
            "Rastreador ativo pode gerar desconto [ASSESSORIA: desconto por seguradora]",
        ],
        notes=[
            "Premio e franquia dependem de modelo, ano e perfil",
            "Frotas podem ter apolice coletiva [ASSESSORIA: criterios por seguradora]",
        ],
    ),
    ProductType.VIDA: InsuranceFacts(
        product_name="Seguro de Vida",
        description="Garante indenizacao aos beneficiarios em caso de morte e pode incluir invalidez e doencas graves.",
        coverages=[
            "Morte natural ou acidental",
            "Invalidez permanente por acidente",
            "Doencas graves listadas na apolice",
            "Auxilio funeral",
        ],
        exclusions=[
            "Suicidio nos dois primeiros anos de vigencia",
            "Doencas preexistentes nao declaradas",
        ],
        acceptance_rules=[
            "Declaracao pessoal de saude obrigatoria [ASSESSORIA: limites de capital para exames]",
            "Idade do segurado impacta aceitacao e premio",
        ],
        notes=[
            "Beneficiarios podem ser alterados por aditivo",
        ],
    ),
    ProductType.RESIDENCIAL: InsuranceFacts(
        product_name="Seguro Residencial",
        description="Protege casas e apartamentos, proprios ou alugados, e o conteudo do imovel.",
        coverages=[
            "Incendio, explosao e queda de raio",
            "Roubo com arrombamento",
            "Danos eletricos",
            "Responsabilidade civil familiar",
            "Assistencia 24h com encanador e eletricista",
        ],
        exclusions=[
            "Danos de obras feitas pelo proprio segurado",
            "Infiltracao gradual e umidade preexistente",
        ],
        acceptance_rules=[
            "Valores do imovel e do conteudo devem ser declarados corretamente",
            "Imovel desocupado por longo periodo pode ter restricao [ASSESSORIA: prazo por seguradora]",
        ],
        notes=[
            "Inquilinos podem segurar apenas o conteudo",
        ],
    ),
    ProductType.EMPRESARIAL: InsuranceFacts(
        product_name="Seguro Empresarial",
        description="Protege o patrimonio e a operacao de estabelecimentos comerciais.",
        coverages=[
            "Incendio e danos eletricos nas instalacoes",
            "Roubo de equipamentos e estoque",
            "Responsabilidade civil do estabelecimento",
            "Lucros cessantes apos sinistro",
        ],
        exclusions=[
            "Greves e tumultos sem cobertura especifica",
            "Sinistros fora do endereco segurado",
        ],
        acceptance_rules=[
            "CNPJ ativo e descricao da atividade sao obrigatorios",
            "Atividades de alto risco exigem vistoria [ASSESSORIA: criterios por seguradora]",
        ],
        notes=[
            "Multiplos estabelecimentos podem ter apolice unica",
        ],
    ),
}

# Checked in order; the first product with a matching keyword wins
PRODUCT_KEYWORDS: List[tuple] = [
    (ProductType.SAUDE, ["saúde", "saude", "plano de saúde", "médico", "medico", "hospitalar"]),
    (ProductType.EMPRESARIAL, ["empresarial", "empresa", "negócio", "negocio", "comercial", "cnpj"]),
    (ProductType.AUTO, ["auto", "automóvel", "automovel", "carro", "veículo", "veiculo", "frota"]),
    (ProductType.VIDA, ["vida", "morte", "funeral"]),
    (ProductType.RESIDENCIAL, ["residencial", "casa", "apartamento", "imóvel", "imovel", "residência", "residencia"]),
]


def detect_product_type(text: Optional[str]) -> Optional[ProductType]:
    """Detect which product line a message is about, or None for general questions."""
    lower = (text or "").lower()
    for product, keywords in PRODUCT_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return product
    return None


def get_product_facts(product: Optional[ProductType]) -> Optional[InsuranceFacts]:
    if product is None:
        return None
    return INSURANCE_FACTS.get(product)

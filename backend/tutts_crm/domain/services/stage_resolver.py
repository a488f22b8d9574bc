"""
RESOLUÇÃO DE ETAPA PELO STATUS DA TUTTS
=======================================

Função pura: recebe o resultado da consulta e a etapa atual e diz para
onde o lead deve ir (ou None). Quem chama é responsável por gravar e
pelo registro de ressurreição.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

from tutts_crm.domain.entities.enums import LeadStage


class StatusSignal(Protocol):
    found: bool
    active: Optional[bool]


@dataclass(frozen=True)
class StageTransition:
    from_stage: LeadStage
    to_stage: LeadStage

    @property
    def is_resurrection(self) -> bool:
        """lead_morto -> finalizado: quem chama registra data e contador."""
        return self.from_stage == LeadStage.DEAD and self.to_stage == LeadStage.ACTIVATED


def resolve_stage(result: StatusSignal, current_stage: Optional[str]) -> Optional[StageTransition]:
    current = LeadStage.normalize(current_stage)

    # 1. Não encontrado na Tutts: nada muda
    if not result.found:
        return None

    # 2. Finalizado só sai dessa etapa pelo decaimento de follow-up
    if current == LeadStage.ACTIVATED:
        return None

    if result.active is True:
        target = LeadStage.ACTIVATED
    elif result.active is False:
        target = LeadStage.QUALIFIED
    else:
        return None

    if target == current:
        return None

    return StageTransition(from_stage=current, to_stage=target)

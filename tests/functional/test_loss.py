# Copyright 2020 Michael Janschek
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
"""Tests for clipped policy and value losses."""

import math

import numpy as np
import pytest
import torch

from pytorch_rl_engine.functional import loss


def assert_allclose(actual, desired):
    return np.testing.assert_allclose(actual, desired, rtol=1e-06, atol=1e-05)


# TEST CONSTANTS

ADVANTAGES = torch.tensor([1.5, -0.5, 2.])
MASK = torch.tensor([True, True, False])


def test_unchanged_policy_yields_negative_mean_advantage():
    log_probs = torch.log(torch.tensor([[0.3], [0.6], [0.1]]))

    value = loss.clipped_surrogate_loss(log_probs, log_probs, ADVANTAGES, torch.zeros(3))

    assert_allclose(value.item(), -ADVANTAGES.mean().item())


def test_ratio_is_clipped():
    log_probs = torch.full((1, 1), math.log(2.))
    old_log_probs = torch.zeros(1, 1)

    value = loss.clipped_surrogate_loss(log_probs, old_log_probs, torch.tensor([1.]),
                                        torch.zeros(1), clip_epsilon=0.2)

    assert_allclose(value.item(), -1.2)


def test_entropy_bonus():
    log_probs = torch.zeros(2, 1)

    value = loss.clipped_surrogate_loss(log_probs, log_probs, torch.zeros(2),
                                        torch.tensor([1., 3.]), entropy_coefficient=0.1)

    assert_allclose(value.item(), -0.2)


def test_value_loss_uses_larger_error():
    value = loss.clipped_value_loss(torch.tensor([1.]), torch.tensor([0.]), torch.tensor([1.]),
                                    clip_range=0.2, value_coefficient=0.5)

    assert_allclose(value.item(), 0.5 * 0.8 ** 2)


def test_masked_losses_ignore_padding():
    nan = float('nan')
    clean_log_probs = torch.tensor([[-0.5], [-1.2]])
    log_probs = torch.tensor([[-0.5], [-1.2], [nan]], requires_grad=True)
    old_log_probs = torch.tensor([[-0.4], [-1.0], [nan]])
    entropy = torch.tensor([0.5, 0.7, nan])
    values = torch.tensor([0.3, 0.1, nan], requires_grad=True)

    actor_loss = loss.clipped_surrogate_loss(log_probs, old_log_probs, ADVANTAGES, entropy,
                                             mask=MASK)
    clean_actor_loss = loss.clipped_surrogate_loss(clean_log_probs,
                                                   old_log_probs[:2],
                                                   ADVANTAGES[:2],
                                                   entropy[:2])
    critic_loss = loss.clipped_value_loss(values, torch.tensor([0.2, 0.2, nan]),
                                          torch.tensor([1., 0.5, nan]), mask=MASK)

    assert torch.isfinite(actor_loss)
    assert torch.isfinite(critic_loss)
    assert_allclose(actor_loss.item(), clean_actor_loss.item())

    (actor_loss + critic_loss).backward()

    assert torch.isfinite(log_probs.grad).all()
    assert torch.isfinite(values.grad).all()
    assert log_probs.grad[2].item() == 0.
    assert values.grad[2].item() == 0.


def test_masked_select_batch():
    tensor = torch.arange(6.).view(3, 2)

    assert_allclose(loss.masked_select_batch(tensor, MASK), [[0., 1.], [2., 3.]])


def test_masked_select_batch_rejects_mismatch():
    with pytest.raises(ValueError):
        loss.masked_select_batch(torch.zeros(2, 2), MASK)


def test_approximate_kl():
    log_probs = torch.tensor([[-1.], [-2.], [float('nan')]])
    old_log_probs = torch.tensor([[-0.5], [-1.5], [0.]])

    assert_allclose(loss.approximate_kl(log_probs, old_log_probs, MASK).item(), 0.5)
